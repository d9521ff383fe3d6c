"""Utilities related to logging."""

import io
import logging
import logging.config
from contextvars import ContextVar
from importlib import resources

import yaml
from pythonjsonlogger import jsonlogger

DEFAULT_LOGGING_CONFIG_PATH_INI = "oob_wallet.config:default_logging_config.ini"
LOG_FORMAT_JSON = (
    "%(asctime)s %(wallet_id)s %(levelname)s %(pathname)s:%(lineno)d %(message)s"
)

context_wallet_id: ContextVar[str] = ContextVar("context_wallet_id")


class ContextFilter(logging.Filter):
    """Logging filter adding the wallet id of the current request to records."""

    def filter(self, record):
        """Add the wallet id, or None outside a request, to the record."""
        record.wallet_id = context_wallet_id.get(None)
        return True


def load_resource(path: str, encoding: str = None):
    """
    Open a resource file located in a python package or the local filesystem.

    Args:
        path: The resource path in the form of `dir/file` or `package:dir/file`
        encoding: Text encoding; the stream is binary if not given

    Returns:
        A file-like object representing the resource, or None if not found

    """
    components = path.rsplit(":", 1)
    try:
        if len(components) == 1:
            # Local filesystem resource
            return open(components[0], encoding=encoding)
        # Package resource
        package, resource = components
        bstream = resources.files(package).joinpath(resource).open("rb")
        if encoding:
            return io.TextIOWrapper(bstream, encoding=encoding)
        return bstream
    except (IOError, ModuleNotFoundError):
        return None


class LoggingConfigurator:
    """Utility class used to configure logging."""

    default_config_path_ini = DEFAULT_LOGGING_CONFIG_PATH_INI

    @classmethod
    def configure(
        cls,
        log_config_path: str = None,
        log_level: str = None,
        log_file: str = None,
        json_format: bool = False,
    ):
        """
        Configure logger.

        Args:
            log_config_path: Optional path to a custom ini or YAML logging config
            log_level: Optional level applied to the root logger and its handlers
            log_file: Optional file name to write logs to
            json_format: Write the log file as JSON lines

        """
        cls._setup_log_config_file(log_config_path or cls.default_config_path_ini)

        if log_file:
            file_handler = logging.FileHandler(log_file, encoding="utf-8")
            if json_format:
                file_handler.setFormatter(jsonlogger.JsonFormatter(LOG_FORMAT_JSON))
            else:
                file_handler.setFormatter(logging.Formatter(LOG_FORMAT_JSON))
            logging.root.handlers.append(file_handler)

        # Every handler needs the wallet id the formats refer to
        log_filter = ContextFilter()
        for handler in logging.root.handlers:
            handler.addFilter(log_filter)
            if log_level:
                handler.setLevel(log_level.upper())

        if log_level:
            logging.root.setLevel(log_level.upper())

    @classmethod
    def _setup_log_config_file(cls, log_config_path: str):
        log_config, is_dict_config = cls._load_log_config(log_config_path)

        if not log_config:
            logging.basicConfig(level=logging.WARNING)
            logging.root.warning("Logging config file not found: %s", log_config_path)
        elif is_dict_config:
            logging.config.dictConfig(log_config)
        else:
            with log_config:
                logging.config.fileConfig(log_config, disable_existing_loggers=False)

    @classmethod
    def _load_log_config(cls, log_config_path: str):
        if log_config_path.endswith((".yml", ".yaml")):
            with open(log_config_path, "r") as stream:
                return yaml.safe_load(stream), True
        return load_resource(log_config_path, "utf-8"), False
