"""Configuration file loader and validator.

Reads the INI configuration file into the ``Config`` data classes, coerces every value to the type
of its default and validates the pipeline settings. Raises exceptions for any issues encountered
during loading.
"""

from __future__ import annotations

import ast
import configparser
import logging
from configparser import ConfigParser
from dataclasses import fields
from pathlib import Path
from typing import TYPE_CHECKING, Any, Final

from core.cleaning.cleaner import INTERLEAVE_POLICIES
from models.config_models import Config
from utils.logger_utils import LoggerUtils

if TYPE_CHECKING:
    from collections.abc import Callable
    from dataclasses import Field as DataclassField
else:
    from dataclasses import Field as DataclassField

__all__: list[str] = [
    "ConfigFileNotFoundError",
    "ConfigFormatError",
    "ConfigLoader",
    "ConfigTypeError",
    "ConfigValueError",
    "InternalError",
]

logger: logging.Logger = LoggerUtils.get_logger(__name__)

ALLOWED_ORACLE_ENGINES: Final[list[str]] = ["chat_completion", "deepl"]


class InternalError(Exception):
    """An anomaly occurred in the internal process."""


class ConfigLoaderError(Exception):
    """An error occurred while processing the configuration file."""


class ConfigFileNotFoundError(ConfigLoaderError):
    """The specified configuration file does not exist."""


class ConfigFormatError(ConfigLoaderError):
    """The configuration file is not formatted correctly."""


class ConfigValueError(ConfigFormatError):
    """The configuration file contains an invalid value."""


class ConfigTypeError(ConfigFormatError):
    """The configuration file contains an invalid type."""


class ConfigLoader:
    """Handles loading and validation of configuration settings.

    Sections and keys missing from the file keep their defaults.

    Args:
        config_filename (str): INI file name to load.
        script_name (str): Name of the program using the pipeline, used in error messaging.
        debug (bool): Optional override that forces debug logging.

    Raises:
        ConfigFileNotFoundError: If the configuration file does not exist.
        ConfigFormatError: If the file cannot be parsed or contains invalid values/types.
    """

    def __init__(
        self,
        *,
        config_filename: str,
        script_name: str,
        **args,
    ) -> None:
        config_path = Path(config_filename)
        msg: str
        if not config_path.exists():
            msg = (
                f"Configuration file '{config_filename}' not found. "
                f"Please create '{config_filename}' in the same directory as '{script_name}'."
            )
            raise ConfigFileNotFoundError(msg)

        parser: ConfigParser = ConfigParser()

        try:
            parser.read(config_filename, encoding="utf-8")
        except configparser.Error as err:
            msg = f"Failed to parse configuration file '{config_filename}': {err}"
            raise ConfigFormatError(msg) from None

        self.config = Config()
        self._convert_settings(parser)
        if args.get("debug", False):
            self.config.GENERAL.DEBUG = True
        if self.config.GENERAL.DEBUG:
            self.config.GENERAL.LOG_LEVEL = "DEBUG"
        self._validate_settings()

    def _convert_settings(self, parser: ConfigParser) -> None:
        """Copy every defined INI value into the matching Config field.

        Raises:
            ConfigFormatError: If a value cannot be parsed or coerced to the expected type.
        """
        formatter = _ConfigFormatter(self.config, parser)
        for section in fields(self.config):
            if not parser.has_section(section.name):
                logger.debug("Section '%s' is not defined; defaults are used", section.name)
                continue
            self._convert_section_field(parser, formatter, section)

    def _convert_section_field(
        self, parser: ConfigParser, formatter: _ConfigFormatter, section: DataclassField[Any]
    ) -> None:
        for key in fields(getattr(self.config, section.name)):
            if not parser.has_option(section.name, key.name):
                logger.debug("Skipping undefined setting: '%s.%s'", section.name, key.name)
                continue

            formatted_value = formatter.apply_format(section, key)
            setattr(getattr(self.config, section.name), key.name, formatted_value)

    def apply_logging(self) -> LoggerUtils:
        """Configure the namespace logger from the GENERAL section.

        Returns:
            LoggerUtils: The configured logging singleton.
        """
        utils: LoggerUtils = LoggerUtils.configure_from(self.config.GENERAL.LOG_FILE, self.config.GENERAL.LOG_LEVEL)
        logger.info("Logging level set to '%s'", utils.get_level().name)
        return utils

    def _validate_settings(self) -> None:
        """Validate ranges, engine names, the interleave policy and the logging level.

        Raises:
            ConfigFormatError: If validation fails for any setting.
        """
        self._inspect_defined_item("ORACLE", "ENGINE", ALLOWED_ORACLE_ENGINES)
        try:
            self._validate_range("PURITY", "THRESHOLD", minimum=0.0, maximum=1.0)
            self._validate_range("PURITY", "CEILING", minimum=0.0, maximum=1.0)
            self._validate_range("PURITY", "MIN_CONTENT_LENGTH", minimum=1)
            self._validate_range("CLEANING", "MAX_ITERATIONS", minimum=1)
            self._validate_range("ORACLE", "RETRY_BUDGET", minimum=0)
            self._validate_range("ORACLE", "TIMEOUT", minimum=0.0, inclusive=False)
            self._validate_range("ORACLE", "TEMPERATURE", minimum=0.0, maximum=2.0)
            self._validate_range("ORACLE", "MAX_TOKENS", minimum=1)
            self._validate_range("CACHE", "MAX_ENTRIES", minimum=1)
            self._validate_range("CACHE", "TTL_HOURS", minimum=0.0, inclusive=False)
            self._validate_range("CACHE", "REVALIDATION_SAMPLE", minimum=1)
            self._validate_choice("CLEANING", "INTERLEAVE_POLICY", INTERLEAVE_POLICIES)
            self._validate_choice("GENERAL", "LOG_LEVEL", tuple(logging.getLevelNamesMapping()))
        except (AttributeError, TypeError) as err:
            msg: str = f"Invalid configuration value: {err}"
            raise ConfigFormatError(msg) from None

        if self.config.PURITY.CEILING >= self.config.PURITY.THRESHOLD:
            logger.warning(
                "PURITY.CEILING (%s) is not below PURITY.THRESHOLD (%s)",
                self.config.PURITY.CEILING,
                self.config.PURITY.THRESHOLD,
            )

    def _validate_range(
        self,
        section_name: str,
        key_name: str,
        *,
        minimum: float,
        maximum: float | None = None,
        inclusive: bool = True,
    ) -> None:
        """Check that a numeric setting lies within its bounds.

        Raises:
            ConfigValueError: If the value is out of range.
        """
        value: float = getattr(getattr(self.config, section_name), key_name)
        field_name: str = f"{section_name}.{key_name}"

        below: bool = value < minimum if inclusive else value <= minimum
        if below or (maximum is not None and value > maximum):
            bounds: str = f"[{minimum}, {maximum}]" if maximum is not None else f"{'>=' if inclusive else '>'} {minimum}"
            msg: str = f"'{field_name}' is out of range ({bounds}): {value}"
            raise ConfigValueError(msg)

    def _validate_choice(self, section_name: str, key_name: str, choices: tuple[str, ...]) -> None:
        """Check that a string setting is one of the allowed values.

        Raises:
            ConfigValueError: If the value is not allowed.
        """
        value: str = getattr(getattr(self.config, section_name), key_name)
        field_name: str = f"{section_name}.{key_name}"
        if not isinstance(value, str):
            msg: str = f"Unsupported type used for '{field_name}': {type(value)}"
            raise ConfigTypeError(msg)
        if section_name == "GENERAL":
            value = value.upper()
            setattr(getattr(self.config, section_name), key_name, value)
        if value not in choices:
            msg = f"Unsupported value used for '{field_name}': '{value}'. Allowed: {', '.join(choices)}"
            raise ConfigValueError(msg)

    def _inspect_defined_item(self, section_name: str, key_name: str, defined_list: list[str]) -> None:
        """Verify that configuration values match allowed options.

        A single string is normalized to a one-element list.

        Args:
            section_name (str): Section name in the config model.
            key_name (str): Field name to inspect.
            defined_list (list[str]): Allowed values.

        Raises:
            ConfigTypeError: If the configured value is neither list nor str.
            ConfigValueError: If an unknown value is configured or the list is empty.
        """
        value: str | list[str] = getattr(getattr(self.config, section_name), key_name)
        field_name: str = f"{section_name}.{key_name}"

        if not isinstance(value, (list, str)):
            msg: str = f"Unsupported type used for '{field_name}': {type(value)}"
            raise ConfigTypeError(msg)

        values: list[str] = value if isinstance(value, list) else [value]
        unknown: list[str] = [val for val in values if val not in defined_list]
        if unknown:
            msg = f"Unknown value(s) {unknown} set for '{field_name}'. Allowed: {', '.join(defined_list)}"
            raise ConfigValueError(msg)
        if not values:
            msg = f"'{field_name}' must name at least one value"
            raise ConfigValueError(msg)
        setattr(getattr(self.config, section_name), key_name, values)


class _ConfigFormatter:
    """Converts INI string values to typed Python objects (bool, int, float, list, str)."""

    def __init__(self, config: Config, parser: ConfigParser) -> None:
        self.config: Config = config
        self.parser: ConfigParser = parser

    def apply_format(self, section: DataclassField[Any], key: DataclassField[Any]) -> Any:
        """Convert INI value to the expected Python type based on the Config field default.

        Booleans and numbers are parsed directly. Everything else is read as a Python literal, so
        strings must be quoted in the INI file.

        Returns:
            Any: Parsed value coerced to the type declared in the config dataclass.

        Raises:
            ConfigValueError: If a value cannot be coerced to the expected type.
            ConfigFormatError: If literal evaluation fails due to invalid syntax.
            ConfigTypeError: If an unexpected type is encountered during coercion.
        """
        formatters: dict[
            type[bool | int | float], Callable[[DataclassField[Any], DataclassField[Any]], bool | int | float]
        ] = {
            bool: self.parse_as_boolean,
            int: self.parse_as_integer,
            float: self.parse_as_float,
        }

        formatter: Callable[[DataclassField[Any], DataclassField[Any]], bool | int | float] | None = formatters.get(
            type(getattr(getattr(self.config, section.name), key.name))
        )
        if formatter:
            try:
                return formatter(section, key)
            except ValueError as err:
                msg = f"Invalid value for {section.name}.{key.name}: {err}"
                raise ConfigValueError(msg) from err
            except TypeError as err:
                msg = f"Invalid value for {section.name}.{key.name}: {err}"
                raise ConfigTypeError(msg) from err

        value_str: str = self.parser[section.name][key.name]
        try:
            return ast.literal_eval(value_str)
        except ValueError as err:
            msg = f"Invalid literal for {section.name}.{key.name}: {value_str}"
            raise ConfigValueError(msg) from err
        except SyntaxError as err:
            msg = f"Invalid literal for {section.name}.{key.name}: {value_str}"
            raise ConfigFormatError(msg) from err

    def _strip_number(self, section: DataclassField[Any], key: DataclassField[Any]) -> str:
        value: str = self.parser.get(section.name, key.name).strip()
        for char in ("'", '"', "%"):
            value = value.removeprefix(char).removesuffix(char)
        return value

    def parse_as_float(self, section: DataclassField[Any], key: DataclassField[Any]) -> float:
        """Convert INI string to float."""
        return float(self._strip_number(section, key))

    def parse_as_integer(self, section: DataclassField[Any], key: DataclassField[Any]) -> int:
        """Convert INI string to integer."""
        return int(float(self._strip_number(section, key)))

    def parse_as_boolean(self, section: DataclassField[Any], key: DataclassField[Any]) -> bool:
        """Convert INI string to boolean."""
        return self.parser.getboolean(section.name, key.name)


if __name__ == "__main__":
    import pprint

    test = ConfigLoader(config_filename="legal_purity.ini", script_name="TEST")
    pp = pprint.PrettyPrinter(indent=1, width=100)
    pp.pprint(test.config)
