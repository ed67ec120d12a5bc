# === NAVMAP v1 ===
# {
#   "module": "ExtensionCopilot.ManifestAnalysis.cli",
#   "purpose": "Typer CLI running manifest diagnostics and OID lookups outside an editor",
#   "sections": [
#     {"id": "clicontext", "name": "CliContext", "anchor": "class-clicontext", "kind": "class"},
#     {"id": "main", "name": "main", "anchor": "function-main", "kind": "function"},
#     {"id": "check", "name": "check", "anchor": "function-check", "kind": "function"},
#     {"id": "lookup", "name": "lookup", "anchor": "function-lookup", "kind": "function"},
#     {"id": "version-cmd", "name": "version_cmd", "anchor": "function-version-cmd", "kind": "function"}
#   ]
# }
# === /NAVMAP ===

"""Command line front-end for manifest analysis.

Runs the same session an editor host would, once, against a manifest on disk:

    extension-copilot check extension/extension.yaml
    extension-copilot --config copilot.yaml check extension/extension.yaml --format json
    extension-copilot lookup 1.3.6.1.2.1.1.1 sysUpTime --offline
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import List, Optional

import typer
from rich.console import Console
from rich.table import Table

from ExtensionCopilot import __version__

from .errors import UserConfigError
from .findings import Finding, Severity
from .logging_utils import setup_logging
from .settings import AnalysisSettings, load_settings
from .session import AnalysisSession
from .snmp.records import OidRecord
from .snmp.remote import OidRepositoryClient, build_http_client
from .snmp.store import IdentifierReferenceStore, discover_user_definitions

_console = Console()
_err_console = Console(stderr=True)

_OUTPUT_FORMATS = ("table", "json")
_SEVERITY_STYLES = {
    Severity.ERROR: "red",
    Severity.WARNING: "yellow",
    Severity.INFORMATION: "cyan",
    Severity.HINT: "dim",
}
_VERBOSITY_LEVELS = {0: None, 1: "INFO", 2: "DEBUG"}


class CliContext:
    """Shared state of one CLI invocation (settings and consoles)."""

    def __init__(self, settings: AnalysisSettings, verbosity: int = 0) -> None:
        self.settings = settings
        self.verbosity = verbosity
        self.console = _console
        self.err_console = _err_console

    def settings_for(self, *, offline: bool = False, timeout: Optional[float] = None) -> AnalysisSettings:
        """Return a copy of the settings with per-command overrides applied."""

        settings = self.settings.model_copy(deep=True)
        if offline:
            settings.lookup.offline = True
        if timeout is not None:
            settings.lookup.timeout_sec = timeout
        return settings


app = typer.Typer(
    name="extension-copilot",
    help="Extension manifest diagnostics and SNMP OID lookups",
    no_args_is_help=True,
)

_context: Optional[CliContext] = None


def get_context() -> CliContext:
    """Return the context created by :func:`main`.

    Raises:
        RuntimeError: If the callback has not run.
    """

    if _context is None:
        raise RuntimeError("CLI context not initialized")
    return _context


@app.callback()
def main(
    config: Optional[Path] = typer.Option(
        None,
        "--config",
        "-c",
        envvar="EXTCOPILOT_CONFIG",
        help="Path to a YAML settings file",
    ),
    verbosity: int = typer.Option(
        0,
        "--verbose",
        "-v",
        count=True,
        help="Increase log verbosity (-v for INFO, -vv for DEBUG)",
    ),
) -> None:
    """Analyse extension manifests the way the editor integration does."""

    global _context
    try:
        settings = load_settings(config)
    except UserConfigError as exc:
        _err_console.print(f"[red]Error loading settings: {exc}[/red]")
        raise typer.Exit(2) from exc

    level = _VERBOSITY_LEVELS.get(min(verbosity, 2)) or settings.logging.level
    setup_logging(
        level=level,
        retention_days=settings.logging.retention_days,
        max_log_size_mb=settings.logging.max_log_size_mb,
        log_dir=settings.logging.log_dir,
    )
    _context = CliContext(settings, verbosity)


def _render_findings(console: Console, manifest: Path, findings: List[Finding]) -> None:
    if not findings:
        console.print(f"[green]✓ {manifest}: no findings[/green]")
        return
    table = Table(title=str(manifest))
    table.add_column("Line", justify="right")
    table.add_column("Col", justify="right")
    table.add_column("Severity")
    table.add_column("Code")
    table.add_column("Message")
    for finding in findings:
        style = _SEVERITY_STYLES.get(finding.severity, "")
        table.add_row(
            str(finding.range_start.line + 1),
            str(finding.range_start.character + 1),
            f"[{style}]{finding.severity.value}[/{style}]" if style else finding.severity.value,
            finding.code,
            finding.message,
        )
    console.print(table)


@app.command()
def check(
    manifest: Path = typer.Argument(..., exists=True, dir_okay=False, help="Path to extension.yaml"),
    workspace: Optional[Path] = typer.Option(
        None, "--workspace", "-w", help="Workspace root (defaults to the manifest's directory)"
    ),
    format_output: str = typer.Option("table", "--format", "-f", help="Output format: table, json"),
    offline: bool = typer.Option(False, "--offline", help="Do not query the online OID repository"),
    timeout: float = typer.Option(10.0, "--timeout", min=0.1, help="Seconds to wait for the manifest and each lookup"),
) -> None:
    """Run every diagnostic rule against MANIFEST.

    Exits with status 1 when any error-severity finding is reported and with
    status 2 when the manifest never parses.

    Example:
        $ extension-copilot check extension/extension.yaml --offline
    """

    ctx = get_context()
    if format_output not in _OUTPUT_FORMATS:
        ctx.err_console.print(f"[red]Unsupported format {format_output!r}; use table or json[/red]")
        raise typer.Exit(2)

    settings = ctx.settings_for(offline=offline, timeout=timeout)
    with AnalysisSession(manifest, settings, workspace_root=workspace, auto_diagnostics=False) as session:
        try:
            session.initialize(timeout=timeout)
        except TimeoutError as exc:
            ctx.err_console.print(f"[red]✗ {exc}[/red]")
            raise typer.Exit(2) from exc
        findings = session.diagnostics()

    if format_output == "json":
        typer.echo(json.dumps([finding.to_dict() for finding in findings], indent=2))
    else:
        _render_findings(ctx.console, manifest, findings)

    if any(finding.severity is Severity.ERROR for finding in findings):
        raise typer.Exit(1)


def _record_row(record: OidRecord) -> List[str]:
    return [
        record.raw_key,
        record.source,
        record.object_name or "",
        record.syntax or "",
        record.max_access or "",
        "yes" if record.is_table else "",
    ]


@app.command()
def lookup(
    oids: List[str] = typer.Argument(..., help="Dotted OIDs or object names"),
    mibs: Optional[Path] = typer.Option(
        None, "--mibs", help="Workspace whose snmp/ folders hold extra MIB files"
    ),
    format_output: str = typer.Option("table", "--format", "-f", help="Output format: table, json"),
    offline: bool = typer.Option(False, "--offline", help="Do not query the online OID repository"),
) -> None:
    """Resolve OIDs through the bundled MIBs and the online repository.

    Example:
        $ extension-copilot lookup 1.3.6.1.2.1.1.1 ifInOctets
    """

    ctx = get_context()
    settings = ctx.settings_for(offline=offline)
    remote: Optional[OidRepositoryClient] = None
    if not settings.lookup.offline:
        remote = OidRepositoryClient(build_http_client(settings.lookup), settings.lookup.base_url)
    try:
        store = IdentifierReferenceStore(
            remote=remote,
            offline=settings.lookup.offline,
            max_workers=settings.lookup.max_concurrent_lookups,
        )
        store.load_bundled_definitions()
        if mibs is not None:
            store.load_user_definitions(discover_user_definitions(mibs))
        records = store.lookup_many(oids)
    finally:
        if remote is not None:
            remote.close()

    if format_output == "json":
        payload = [
            {
                "oid": record.raw_key,
                "source": record.source,
                "object_name": record.object_name,
                "object_type": record.object_type,
                "syntax": record.syntax,
                "max_access": record.max_access,
                "status": record.status,
                "index": record.index,
                "description": record.description,
            }
            for record in records
        ]
        typer.echo(json.dumps(payload, indent=2))
        return

    table = Table(title="OID lookup")
    for column in ("OID", "Source", "Name", "Syntax", "Access", "Table"):
        table.add_column(column)
    for record in records:
        table.add_row(*_record_row(record))
    ctx.console.print(table)


@app.command("version")
def version_cmd() -> None:
    """Show version information."""

    typer.echo(f"extension-copilot {__version__}")


__all__ = ["app", "CliContext", "get_context", "main", "check", "lookup", "version_cmd"]
