from __future__ import annotations

import pytest

from ExtensionCopilot.ManifestAnalysis.snmp.records import (
    OidRecord,
    RecordSource,
    is_dotted_path,
    is_valid_oid_syntax,
    looks_symbolic,
    oid_from_metric_value,
    parent_oid,
    scalar_ancestor,
    strip_instance_suffix,
    table_ancestor,
)


@pytest.mark.parametrize(
    ("identifier", "valid"),
    [
        ("1.3.6.1.2.1.1.3.0", True),
        ("1", True),
        ("sysUpTime", True),
        (".1.3.6", False),
        ("1.3.6.", False),
        ("sys-up-time", False),
        ("1.3.6 .1", False),
        ("", False),
    ],
)
def test_oid_syntax(identifier: str, valid: bool) -> None:
    assert is_valid_oid_syntax(identifier) is valid


def test_symbolic_and_dotted_forms() -> None:
    assert looks_symbolic("ifInOctets")
    assert not looks_symbolic("12")
    assert not looks_symbolic("1.3")
    assert is_dotted_path("1.3.6")
    assert not is_dotted_path("1")
    assert not is_dotted_path("ifInOctets")


def test_metric_value_prefix() -> None:
    assert oid_from_metric_value(" oid: 1.3.6.1 ") == "1.3.6.1"
    assert oid_from_metric_value("metric:up") == "metric:up"


def test_instance_suffix_and_parents() -> None:
    assert strip_instance_suffix("1.3.6.1.2.1.1.3.0") == "1.3.6.1.2.1.1.3"
    assert strip_instance_suffix("1.3.6.1.2.1.1.3.10") == "1.3.6.1.2.1.1.3.10"
    assert strip_instance_suffix(".0") == ".0"
    assert parent_oid("1.3.6") == "1.3"
    assert parent_oid("1") == ""


def test_table_ancestor_drops_two_segments() -> None:
    assert table_ancestor("1.3.6.1.2.1.2.2.1.10") == "1.3.6.1.2.1.2.2"
    assert table_ancestor("1.3") == ""


@pytest.mark.parametrize("path", ["1.2.3", "1.3.6.1.2.1", "1.3.6.1.4.1.99999.1.1"])
def test_scalar_and_table_ancestors_agree_on_instances(path: str) -> None:
    assert scalar_ancestor(path + ".0") == table_ancestor(path + ".0")


def test_scalar_ancestor_examples() -> None:
    assert scalar_ancestor("1.3.0") == "1"
    assert scalar_ancestor("1.3.6.1.2.0") == "1.3.6.1"
    assert scalar_ancestor("1.2.3.0") == "1.2"


def test_record_predicates() -> None:
    counter = OidRecord("1.1", RecordSource.LOCAL, "c", "OBJECT-TYPE", syntax="Counter64", max_access="read-only")
    gauge = OidRecord("1.2", RecordSource.LOCAL, "g", "OBJECT-TYPE", syntax="Gauge32", max_access="read-only")
    integer = OidRecord("1.3", RecordSource.LOCAL, "i", "OBJECT-TYPE", syntax="INTEGER { up(1), down(2) }")
    text = OidRecord("1.4", RecordSource.LOCAL, "t", "OBJECT-TYPE", syntax="OCTET STRING (SIZE (0..255))")
    table = OidRecord("1.5", RecordSource.LOCAL, "x", "OBJECT-TYPE", syntax="SEQUENCE OF Entry", max_access="not-accessible")
    notify = OidRecord("1.6", RecordSource.LOCAL, "n", "OBJECT-TYPE", syntax="OBJECT IDENTIFIER", max_access="accessible-for-notify")

    assert counter.is_counter and not counter.is_gauge
    assert gauge.is_gauge and not gauge.is_counter
    assert integer.is_gauge
    assert text.is_text and not text.is_table
    assert table.is_table and not table.is_readable
    assert not notify.is_readable
    assert counter.is_readable and integer.is_readable


def test_empty_record_is_negative() -> None:
    record = OidRecord.empty("1.3.6.1.4.1.424242")

    assert not record.exists
    assert record.source == RecordSource.NONE
    assert record.is_readable
    assert not (record.is_counter or record.is_gauge or record.is_text or record.is_table)
