"""idlcall constants and enums."""

PRIMITIVES = {"bool", "u8", "u32", "u64", "u128", "string", "program_id"}
PRIMITIVE_ALIASES = {"String": "string"}

WORD_MAX = 0xFFFF_FFFF
ADDRESS_LEN = 32
PROGRAM_ID_WORDS = 8

UINT_MAX = {
    "u8": 0xFF,
    "u32": 0xFFFF_FFFF,
    "u64": 2**64 - 1,
    "u128": 2**128 - 1,
}

BOOL_TRUE = {"true", "1", "yes"}
BOOL_FALSE = {"false", "0", "no"}
OPTION_NONE = {"none", "null", ""}

SEED_CONST = "const"
SEED_ACCOUNT = "account"
SEED_ARG = "arg"
ALLOWED_SEED_KINDS = {SEED_CONST, SEED_ACCOUNT, SEED_ARG}

ACCOUNT_FLAG_SUFFIX = "-account"
PROGRAM_ID_ARG_SUFFIX = "-program-id"

# Domain tag for the default PDA derivation, zero-padded to 32 bytes.
PDA_DOMAIN = b"/idlcall/v1/AccountId/PDA/"

ENV_CONFIG = "IDLCALL_CONFIG"
ENV_IDL = "IDLCALL_IDL"
ENV_PROGRAM = "IDLCALL_PROGRAM"
ENV_SEQUENCER_URL = "IDLCALL_SEQUENCER_URL"
ENV_WALLET_DIR = "IDLCALL_WALLET_DIR"
ENV_IMAGE_ID_TOOL = "IDLCALL_IMAGE_ID_TOOL"

DEFAULT_CONFIG_NAME = "idlcall.toml"
DEFAULT_SEQUENCER_URL = "http://127.0.0.1:3040"
DEFAULT_IMAGE_ID_TOOL = "r0-image-id"
PROGRAM_ID_SIDECAR_SUFFIX = ".id"

CONFIRM_TIMEOUT_SECONDS = 60.0
CONFIRM_POLL_INTERVAL = 1.0

DEFAULT_WALLET_DIR = "~/.config/idlcall/wallet"
