"""Tests for test identity and attributes."""

from pathlib import Path

from browser_test_harness.models.test_context import (
    PRIORITY_UNSET,
    TIMEOUT_INFINITE,
    TestAttributes,
    TestIdentity,
)


def test_identity_safe_name() -> None:
    """Derives a file-safe name from the test name."""
    identity = TestIdentity(
        name="Acme/Login::Valid#1",
        class_name="tests.acme.TestLogin",
        binaries_directory=Path("bin"),
        deployment_directory=Path("tests"),
        log_directory=Path("logs"),
    )

    assert identity.safe_name == "AcmeXLoginXXValidX1"


def test_attributes_defaults() -> None:
    """Unset attributes use the sentinel values."""
    attributes = TestAttributes()

    assert attributes.priority == PRIORITY_UNSET
    assert attributes.timeout_ms == TIMEOUT_INFINITE
    assert attributes.categories == ()


def test_from_properties_reads_known_keys() -> None:
    """Maps the known property keys to attribute fields."""
    attributes = TestAttributes.from_properties(
        [
            ("Description", "Logs in with valid credentials"),
            ("Author", "qa-team"),
            ("Priority", "2"),
            ("Timeout", 30000),
            ("Category", "smoke"),
            ("Category", ["login", "auth"]),
            ("WorkItem", 1234),
            ("WorkItem", ("5678",)),
        ]
    )

    assert attributes == TestAttributes(
        description="Logs in with valid credentials",
        owner="qa-team",
        priority=2,
        timeout_ms=30000,
        categories=("smoke", "login", "auth"),
        work_items=(1234, 5678),
    )


def test_from_properties_keeps_unknown_keys_in_order() -> None:
    """Keeps every other property as an extra key/value pair."""
    attributes = TestAttributes.from_properties(
        [("Browser", "chrome"), ("Build", 42), ("Browser", "edge")]
    )

    assert attributes.extra_properties == (
        ("Browser", "chrome"),
        ("Build", "42"),
        ("Browser", "edge"),
    )
