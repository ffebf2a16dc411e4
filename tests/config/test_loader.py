from __future__ import annotations

from textwrap import dedent
from typing import TYPE_CHECKING

import pytest

from config.loader import (
    ConfigFileNotFoundError,
    ConfigFormatError,
    ConfigLoader,
    ConfigTypeError,
    ConfigValueError,
)

if TYPE_CHECKING:
    from pathlib import Path


def _write_ini(tmp_path: Path, content: str) -> Path:
    ini_path: Path = tmp_path / "legal_purity.ini"
    ini_path.write_text(dedent(content), encoding="utf-8")
    return ini_path


def test_config_loader_raises_for_missing_file(tmp_path: Path) -> None:
    ini_path: Path = tmp_path / "missing.ini"
    with pytest.raises(ConfigFileNotFoundError):
        ConfigLoader(config_filename=str(ini_path), script_name="test")


def test_empty_file_keeps_defaults(tmp_path: Path) -> None:
    ini_path: Path = _write_ini(tmp_path, "")

    loader = ConfigLoader(config_filename=str(ini_path), script_name="test")

    assert loader.config.PURITY.THRESHOLD == 0.95
    assert loader.config.PURITY.CEILING == 0.05
    assert loader.config.ORACLE.ENGINE == ["chat_completion"]
    assert loader.config.CLEANING.INTERLEAVE_POLICY == "drop_minority"
    assert loader.config.GENERAL.LOG_LEVEL == "INFO"


def test_values_are_coerced_by_default_type(tmp_path: Path) -> None:
    ini_path: Path = _write_ini(
        tmp_path,
        """
        [PURITY]
        THRESHOLD = "0.9"
        MIN_CONTENT_LENGTH = 12.0
        IGNORE_NEUTRAL = no

        [ORACLE]
        ENGINE = ["deepl", "chat_completion"]
        MODEL = "test-model"

        [CACHE]
        TTL_HOURS = 2
        """,
    )

    loader = ConfigLoader(config_filename=str(ini_path), script_name="test")

    assert loader.config.PURITY.THRESHOLD == pytest.approx(0.9)
    assert loader.config.PURITY.MIN_CONTENT_LENGTH == 12
    assert loader.config.PURITY.IGNORE_NEUTRAL is False
    assert loader.config.ORACLE.ENGINE == ["deepl", "chat_completion"]
    assert loader.config.ORACLE.MODEL == "test-model"
    assert loader.config.CACHE.TTL_HOURS == pytest.approx(2.0)


def test_single_engine_string_is_normalized_to_list(tmp_path: Path) -> None:
    ini_path: Path = _write_ini(
        tmp_path,
        """
        [ORACLE]
        ENGINE = "deepl"
        """,
    )

    loader = ConfigLoader(config_filename=str(ini_path), script_name="test")

    assert loader.config.ORACLE.ENGINE == ["deepl"]


def test_debug_override_forces_debug_level(tmp_path: Path) -> None:
    ini_path: Path = _write_ini(
        tmp_path,
        """
        [GENERAL]
        DEBUG = False
        LOG_LEVEL = "warning"
        """,
    )

    loader = ConfigLoader(config_filename=str(ini_path), script_name="test", debug=True)

    assert loader.config.GENERAL.DEBUG is True
    assert loader.config.GENERAL.LOG_LEVEL == "DEBUG"


def test_log_level_is_upper_cased(tmp_path: Path) -> None:
    ini_path: Path = _write_ini(
        tmp_path,
        """
        [GENERAL]
        LOG_LEVEL = "warning"
        """,
    )

    loader = ConfigLoader(config_filename=str(ini_path), script_name="test")

    assert loader.config.GENERAL.LOG_LEVEL == "WARNING"


def test_unknown_log_level_raises_value_error(tmp_path: Path) -> None:
    ini_path: Path = _write_ini(
        tmp_path,
        """
        [GENERAL]
        LOG_LEVEL = "LOUD"
        """,
    )

    with pytest.raises(ConfigValueError):
        ConfigLoader(config_filename=str(ini_path), script_name="test")


def test_invalid_engine_type_raises_type_error(tmp_path: Path) -> None:
    ini_path: Path = _write_ini(
        tmp_path,
        """
        [ORACLE]
        ENGINE = 1
        """,
    )

    with pytest.raises(ConfigTypeError):
        ConfigLoader(config_filename=str(ini_path), script_name="test")


def test_unknown_engine_raises_value_error(tmp_path: Path) -> None:
    ini_path: Path = _write_ini(
        tmp_path,
        """
        [ORACLE]
        ENGINE = ["chat_completion", "babelfish"]
        """,
    )

    with pytest.raises(ConfigValueError, match="babelfish"):
        ConfigLoader(config_filename=str(ini_path), script_name="test")


@pytest.mark.parametrize(
    ("section", "key", "value"),
    [
        ("PURITY", "THRESHOLD", "1.5"),
        ("PURITY", "CEILING", "-0.1"),
        ("PURITY", "MIN_CONTENT_LENGTH", "0"),
        ("ORACLE", "RETRY_BUDGET", "-1"),
        ("ORACLE", "TIMEOUT", "0"),
        ("CACHE", "MAX_ENTRIES", "0"),
        ("CACHE", "TTL_HOURS", "0"),
        ("CLEANING", "MAX_ITERATIONS", "0"),
    ],
)
def test_out_of_range_values_raise_value_error(tmp_path: Path, section: str, key: str, value: str) -> None:
    ini_path: Path = _write_ini(tmp_path, f"[{section}]\n{key} = {value}\n")

    with pytest.raises(ConfigValueError, match=f"{section}.{key}"):
        ConfigLoader(config_filename=str(ini_path), script_name="test")


def test_unknown_interleave_policy_raises_value_error(tmp_path: Path) -> None:
    ini_path: Path = _write_ini(
        tmp_path,
        """
        [CLEANING]
        INTERLEAVE_POLICY = "shuffle"
        """,
    )

    with pytest.raises(ConfigValueError):
        ConfigLoader(config_filename=str(ini_path), script_name="test")


def test_invalid_boolean_value_raises_config_value_error(tmp_path: Path) -> None:
    ini_path: Path = _write_ini(
        tmp_path,
        """
        [CACHE]
        ENABLED = maybe
        """,
    )

    with pytest.raises(ConfigValueError):
        ConfigLoader(config_filename=str(ini_path), script_name="test")


def test_unquoted_string_raises_format_error(tmp_path: Path) -> None:
    ini_path: Path = _write_ini(
        tmp_path,
        """
        [ORACLE]
        MODEL = my model
        """,
    )

    with pytest.raises(ConfigFormatError):
        ConfigLoader(config_filename=str(ini_path), script_name="test")


def test_broken_ini_raises_format_error(tmp_path: Path) -> None:
    ini_path: Path = _write_ini(tmp_path, "THRESHOLD = 0.9\n")

    with pytest.raises(ConfigFormatError):
        ConfigLoader(config_filename=str(ini_path), script_name="test")
