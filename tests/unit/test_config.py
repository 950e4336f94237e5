"""Unit tests for DebuggerConfig and the process-wide configuration."""

import threading
from unittest.mock import patch

import pytest

from cache_debugger.config import (
    DebuggerConfig,
    OutputFormat,
    configure,
    get_configuration,
    reset_configuration,
    set_configuration,
)
from cache_debugger.events import DEFAULT_OBSERVED_KINDS, EventKind
from cache_debugger.exceptions import InvalidConfiguration
from cache_debugger.sinks import InMemorySink


class TestDefaults:
    """Test default configuration values."""

    def test_default_values(self) -> None:
        # Arrange & Act
        config = DebuggerConfig()

        # Assert
        assert config.enabled is True
        assert config.sampling_rate is None
        assert config.format is OutputFormat.TEXT
        assert config.custom_filter is None
        assert config.on_event is None
        assert config.sink is None
        assert config.always_on is False
        assert config.observed_kinds == frozenset(
            {EventKind.READ_HIT, EventKind.READ_MISS, EventKind.WRITE, EventKind.FETCH_HIT}
        )

    def test_default_kinds_exclude_errors(self) -> None:
        assert EventKind.OPERATION_ERROR not in DEFAULT_OBSERVED_KINDS

    def test_default_config_is_valid(self) -> None:
        config = DebuggerConfig()
        assert config.validate() is config


class TestValidate:
    """Test DebuggerConfig.validate."""

    def test_invalid_sampling_rate(self) -> None:
        with pytest.raises(InvalidConfiguration):
            DebuggerConfig(sampling_rate=1.5).validate()

    def test_invalid_format(self) -> None:
        with pytest.raises(InvalidConfiguration, match="format"):
            DebuggerConfig(format="yaml").validate()  # type: ignore[arg-type]

    def test_invalid_filter_arity(self) -> None:
        with pytest.raises(InvalidConfiguration, match="custom_filter"):
            DebuggerConfig(custom_filter=lambda kind: True).validate()  # type: ignore[arg-type]

    def test_invalid_on_event(self) -> None:
        with pytest.raises(InvalidConfiguration, match="on_event"):
            DebuggerConfig(on_event=42).validate()  # type: ignore[arg-type]

    def test_validate_is_repeatable(self) -> None:
        # Arrange
        config = DebuggerConfig(sampling_rate=2.0)

        # Act & Assert
        for _ in range(3):
            with pytest.raises(InvalidConfiguration):
                config.validate()
        assert config.sampling_rate == 2.0


class TestWithChanges:
    """Test validated copies."""

    def test_coerces_strings(self) -> None:
        # Arrange
        config = DebuggerConfig()

        # Act
        updated = config.with_changes(format="JSON", observed_kinds=["cache_read.miss", "write"])

        # Assert
        assert updated.format is OutputFormat.JSON
        assert updated.observed_kinds == frozenset({EventKind.READ_MISS, EventKind.WRITE})
        assert config.format is OutputFormat.TEXT

    def test_single_kind_string(self) -> None:
        updated = DebuggerConfig().with_changes(unsampled_kinds="cache_operation.error")
        assert updated.unsampled_kinds == frozenset({EventKind.OPERATION_ERROR})

    def test_unknown_kind_rejected(self) -> None:
        with pytest.raises(InvalidConfiguration, match="unknown event kind"):
            DebuggerConfig().with_changes(observed_kinds=["cache_bogus"])

    def test_unknown_field_rejected(self) -> None:
        with pytest.raises(InvalidConfiguration, match="Unknown configuration fields: verbose"):
            DebuggerConfig().with_changes(verbose=True)


class TestFromEnv:
    """Test environment resolution."""

    def test_reads_environment(self) -> None:
        # Arrange
        env = {
            "CACHE_DEBUGGER_ENABLED": "false",
            "CACHE_DEBUGGER_SAMPLING_RATE": "0.25",
            "CACHE_DEBUGGER_FORMAT": "json",
            "CACHE_DEBUGGER_EVENTS": "cache_read.hit, cache_read.miss",
        }

        # Act
        with patch.dict("os.environ", env, clear=True):
            config = DebuggerConfig.from_env()

        # Assert
        assert config.enabled is False
        assert config.sampling_rate == 0.25
        assert config.format is OutputFormat.JSON
        assert config.observed_kinds == frozenset({EventKind.READ_HIT, EventKind.READ_MISS})

    def test_explicit_override_wins(self) -> None:
        with patch.dict("os.environ", {"CACHE_DEBUGGER_SAMPLING_RATE": "0.25"}, clear=True):
            config = DebuggerConfig.from_env(sampling_rate=0.75)

        assert config.sampling_rate == 0.75

    def test_defaults_without_environment(self) -> None:
        with patch.dict("os.environ", {}, clear=True):
            config = DebuggerConfig.from_env()

        assert config == DebuggerConfig()

    def test_invalid_values(self) -> None:
        # Arrange
        invalid_envs = [
            {"CACHE_DEBUGGER_ENABLED": "maybe"},
            {"CACHE_DEBUGGER_SAMPLING_RATE": "often"},
            {"CACHE_DEBUGGER_SAMPLING_RATE": "3"},
            {"CACHE_DEBUGGER_FORMAT": "xml"},
            {"CACHE_DEBUGGER_EVENTS": "cache_read.hit,nope"},
        ]

        # Act & Assert
        for env in invalid_envs:
            with patch.dict("os.environ", env, clear=True):
                with pytest.raises(InvalidConfiguration):
                    DebuggerConfig.from_env()


class TestProcessConfiguration:
    """Test get/set/configure/reset."""

    def test_configure_updates_global(self) -> None:
        # Act
        updated = configure(sampling_rate=0.5)

        # Assert
        assert get_configuration() is updated
        assert get_configuration().sampling_rate == 0.5

    def test_failed_configure_keeps_previous(self) -> None:
        # Arrange
        before = configure(sampling_rate=0.5)

        # Act
        with pytest.raises(InvalidConfiguration):
            configure(sampling_rate=5.0)

        # Assert
        assert get_configuration() is before

    def test_set_configuration_validates(self) -> None:
        # Arrange
        before = get_configuration()

        # Act & Assert
        with pytest.raises(InvalidConfiguration):
            set_configuration(DebuggerConfig(sampling_rate=-1.0))
        assert get_configuration() is before

    def test_set_configuration_rejects_other_types(self) -> None:
        with pytest.raises(InvalidConfiguration):
            set_configuration({"enabled": True})  # type: ignore[arg-type]

    def test_reset(self) -> None:
        configure(enabled=False, sink=InMemorySink())
        assert reset_configuration() == DebuggerConfig()

    def test_concurrent_updates_are_never_partial(self) -> None:
        # Arrange
        seen: list[tuple[float | None, OutputFormat]] = []
        configs = [
            {"sampling_rate": 0.1, "format": OutputFormat.TEXT},
            {"sampling_rate": 0.9, "format": OutputFormat.JSON},
        ]
        stop = threading.Event()

        def writer() -> None:
            i = 0
            while not stop.is_set():
                configure(**configs[i % 2])
                i += 1

        def reader() -> None:
            for _ in range(2000):
                config = get_configuration()
                seen.append((config.sampling_rate, config.format))

        # Act
        configure(**configs[0])
        thread = threading.Thread(target=writer)
        thread.start()
        reader()
        stop.set()
        thread.join()

        # Assert
        assert set(seen) <= {(0.1, OutputFormat.TEXT), (0.9, OutputFormat.JSON)}
