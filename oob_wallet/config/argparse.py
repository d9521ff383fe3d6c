"""Command line options of the `start` and `provision` commands."""

import abc
from typing import Callable, Iterator, List, Tuple, Type

from configargparse import ArgumentParser, Namespace, YAMLConfigFileParser

from ..protocols.out_of_band.v2_0.request_queue import DEFAULT_TTL_HOURS
from ..vc.validator import DEFAULT_EXPECTED_TYPE
from .error import ArgsParseError
from .util import BoundedInt

CAT_PROVISION = "general"
CAT_START = "start"


class ArgumentGroup(abc.ABC):
    """
    A set of related options and the settings they produce.

    Setting keys are dotted, such as `admin.port` or `wallet.type`.
    """

    GROUP_NAME = None

    @abc.abstractmethod
    def add_arguments(self, parser: ArgumentParser):
        """Declare the options of this group."""

    @abc.abstractmethod
    def get_settings(self, args: Namespace) -> dict:
        """Map parsed options to settings, leaving out options not given."""


class group:
    """Class decorator registering an `ArgumentGroup` under command categories."""

    _registered: List[Tuple[tuple, Type[ArgumentGroup]]] = []

    def __init__(self, *categories):
        """Initialize the decorator."""
        self.categories = tuple(categories)

    def __call__(self, group_cls: Type[ArgumentGroup]):
        group_cls.CATEGORIES = self.categories
        self._registered.append((self.categories, group_cls))
        return group_cls

    @classmethod
    def get_registered(cls, category: str = None) -> Iterator[Type[ArgumentGroup]]:
        """Registered groups, optionally only those of one category."""
        return (
            grp
            for (categories, grp) in cls._registered
            if category is None or category in categories
        )


def create_argument_parser(*, prog: str = None):
    """Create a parser reading `--arg-file` as YAML and `OOB_*` variables."""
    return ArgumentParser(config_file_parser_class=YAMLConfigFileParser, prog=prog)


def load_argument_groups(
    parser: ArgumentParser, *groups: Type[ArgumentGroup]
) -> Callable[[Namespace], dict]:
    """
    Add the options of each group to the parser.

    Returns:
        A function merging the settings of every group for parsed arguments;
        it prints the usage before raising `ArgsParseError`

    """
    loaded = []
    for grp in groups:
        inst = grp()
        inst.add_arguments(parser.add_argument_group(grp.GROUP_NAME))
        loaded.append(inst)

    def get_settings(args: Namespace) -> dict:
        settings = {}
        try:
            for inst in loaded:
                settings.update(inst.get_settings(args))
        except ArgsParseError:
            parser.print_help()
            raise
        return settings

    return get_settings


@group(CAT_START)
class AdminGroup(ArgumentGroup):
    """The admin HTTP server."""

    GROUP_NAME = "Admin"

    def add_arguments(self, parser: ArgumentParser):
        parser.add_argument(
            "--admin",
            type=str,
            nargs=2,
            metavar=("<host>", "<port>"),
            env_var="OOB_ADMIN",
            help=(
                "Serve the admin API on this host and port. Without it the "
                "process runs with no admin server."
            ),
        )
        parser.add_argument(
            "--admin-api-key",
            type=str,
            metavar="<api-key>",
            env_var="OOB_ADMIN_API_KEY",
            help=(
                "Require this key in the 'X-API-Key' header of admin requests. "
                "Exactly one of this or --admin-insecure-mode is required "
                "with --admin."
            ),
        )
        parser.add_argument(
            "--admin-insecure-mode",
            action="store_true",
            env_var="OOB_ADMIN_INSECURE_MODE",
            help=(
                "Serve the admin API without an API key. Only for local "
                "development; see --admin-api-key."
            ),
        )
        parser.add_argument(
            "--admin-client-max-request-size",
            default=1,
            type=BoundedInt(min=1, max=16),
            env_var="OOB_ADMIN_CLIENT_MAX_REQUEST_SIZE",
            help="Largest admin request body accepted, in megabytes. Default: 1.",
        )

    def get_settings(self, args: Namespace):
        if not args.admin:
            return {}
        if bool(args.admin_api_key) == bool(args.admin_insecure_mode):
            raise ArgsParseError(
                "Exactly one of --admin-api-key and --admin-insecure-mode is required"
            )
        host, port = args.admin
        try:
            port = int(port)
        except ValueError as err:
            raise ArgsParseError(f"Invalid admin port: {port}") from err
        return {
            "admin.enabled": True,
            "admin.host": host,
            "admin.port": port,
            "admin.admin_api_key": args.admin_api_key,
            "admin.admin_insecure_mode": args.admin_insecure_mode,
            "admin.admin_client_max_request_size": (
                args.admin_client_max_request_size or 1
            ),
        }


@group(CAT_PROVISION, CAT_START)
class GeneralGroup(ArgumentGroup):
    """Options shared by every command."""

    GROUP_NAME = "General"

    def add_arguments(self, parser: ArgumentParser):
        parser.add_argument(
            "--arg-file",
            is_config_file=True,
            help="Read options from this YAML file.",
        )
        parser.add_argument(
            "-l",
            "--label",
            type=str,
            metavar="<label>",
            env_var="OOB_LABEL",
            help="Label of this wallet, sent with invitations and connection requests.",
        )

    def get_settings(self, args: Namespace) -> dict:
        return {"default_label": args.label} if args.label else {}


@group(CAT_START)
class ProtocolGroup(ArgumentGroup):
    """Out-of-band protocol settings."""

    GROUP_NAME = "Protocol"

    def add_arguments(self, parser: ArgumentParser):
        parser.add_argument(
            "--invitation-base-url",
            type=str,
            metavar="<url>",
            env_var="OOB_INVITATION_BASE_URL",
            help=(
                "Base URL of generated invitations; the encoded invitation is "
                "appended as the '_oob' query parameter."
            ),
        )
        parser.add_argument(
            "--require-signed-credentials",
            action="store_true",
            env_var="OOB_REQUIRE_SIGNED_CREDENTIALS",
            help=(
                "Fail validation of credentials carrying no verifiable signature. "
                "By default unsigned credentials are accepted with a warning."
            ),
        )
        parser.add_argument(
            "--expected-credential-type",
            type=str,
            metavar="<type>",
            env_var="OOB_EXPECTED_CREDENTIAL_TYPE",
            help=(
                "Credential category required of presented proofs. "
                f"Default: {DEFAULT_EXPECTED_TYPE}."
            ),
        )
        parser.add_argument(
            "--request-ttl-hours",
            type=BoundedInt(min=1, max=24 * 365),
            metavar="<hours>",
            env_var="OOB_REQUEST_TTL_HOURS",
            help=(
                "Hours a queued connection request stays valid. "
                f"Default: {DEFAULT_TTL_HOURS}."
            ),
        )

    def get_settings(self, args: Namespace) -> dict:
        settings = {}
        if args.invitation_base_url:
            settings["oob.invitation_base_url"] = args.invitation_base_url
        if args.require_signed_credentials:
            settings["oob.require_signed_credentials"] = True
        if args.expected_credential_type:
            settings["oob.expected_credential_type"] = args.expected_credential_type
        if args.request_ttl_hours:
            settings["queue.ttl_hours"] = args.request_ttl_hours
        return settings


@group(CAT_PROVISION, CAT_START)
class LoggingGroup(ArgumentGroup):
    """Logging settings."""

    GROUP_NAME = "Logging"

    def add_arguments(self, parser: ArgumentParser):
        parser.add_argument(
            "--log-config",
            dest="log_config",
            type=str,
            metavar="<path-to-config>",
            default=None,
            env_var="OOB_LOG_CONFIG",
            help="Logging configuration to load instead of the default (ini or YAML).",
        )
        parser.add_argument(
            "--log-file",
            dest="log_file",
            type=str,
            metavar="<log-file>",
            default=None,
            env_var="OOB_LOG_FILE",
            help="Also write log records to this file.",
        )
        parser.add_argument(
            "--log-json",
            action="store_true",
            env_var="OOB_LOG_JSON",
            help="Write the --log-file as JSON lines.",
        )
        parser.add_argument(
            "--log-level",
            dest="log_level",
            type=str,
            metavar="<log-level>",
            default=None,
            env_var="OOB_LOG_LEVEL",
            help="Root log level: debug, info, warning, error or critical.",
        )

    def get_settings(self, args: Namespace) -> dict:
        settings = {}
        if args.log_config:
            settings["log.config"] = args.log_config
        if args.log_file:
            settings["log.file"] = args.log_file
        if args.log_json:
            settings["log.json"] = True
        if args.log_level:
            settings["log.level"] = args.log_level
        return settings


@group(CAT_PROVISION, CAT_START)
class WalletGroup(ArgumentGroup):
    """Wallet settings."""

    GROUP_NAME = "Wallet"

    def add_arguments(self, parser: ArgumentParser):
        parser.add_argument(
            "--wallet-type",
            type=str,
            metavar="<wallet-type>",
            default="in_memory",
            env_var="OOB_WALLET_TYPE",
            help=(
                "Specifies the type of wallet provider to use. Supported "
                "types are 'in_memory' and 'askar'. Default: in_memory."
            ),
        )
        parser.add_argument(
            "--wallet-name",
            type=str,
            metavar="<wallet-name>",
            env_var="OOB_WALLET_NAME",
            help=(
                "Specifies the default wallet, used by admin requests that carry "
                "no 'X-Wallet-Id' header. Default: default."
            ),
        )
        parser.add_argument(
            "--wallet-key",
            type=str,
            metavar="<wallet-key>",
            env_var="OOB_WALLET_KEY",
            help="Specifies the master key value used to open the wallet stores.",
        )
        parser.add_argument(
            "--wallet-key-derivation-method",
            type=str,
            metavar="<method>",
            env_var="OOB_WALLET_KEY_DERIVATION_METHOD",
            help="Specifies the key derivation method used for wallet encryption.",
        )
        parser.add_argument(
            "--wallet-storage-path",
            type=str,
            metavar="<path>",
            env_var="OOB_WALLET_STORAGE_PATH",
            help="Directory holding one sqlite database per wallet id.",
        )
        parser.add_argument(
            "--auto-provision",
            action="store_true",
            env_var="OOB_AUTO_PROVISION",
            help="Create a wallet store on first use instead of failing.",
        )
        parser.add_argument(
            "--recreate-wallet",
            action="store_true",
            env_var="OOB_RECREATE_WALLET",
            help="When provisioning, replace any existing wallet store.",
        )

    def get_settings(self, args: Namespace) -> dict:
        settings = {}
        settings["wallet.type"] = (args.wallet_type or "in_memory").lower()
        if args.wallet_name:
            settings["wallet.name"] = args.wallet_name
        if args.wallet_key:
            settings["wallet.key"] = args.wallet_key
        if args.wallet_key_derivation_method:
            settings["wallet.key_derivation_method"] = (
                args.wallet_key_derivation_method
            )
        if args.wallet_storage_path:
            settings["wallet.storage_path"] = args.wallet_storage_path
        if args.auto_provision:
            settings["auto_provision"] = True
        if args.recreate_wallet:
            settings["wallet.recreate"] = True
        return settings
