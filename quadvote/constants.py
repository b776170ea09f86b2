"""
Quadvote Constants

This module consolidates the protocol constants of the quadratic voting
ledger and the environment configuration used by the logging system.
Constants are organized by category for easy reference and maintenance.
"""
import ast
import re
from decimal import Decimal
from dotenv import dotenv_values

# =============================================================================
# ENVIRONMENT CONFIGURATION
# =============================================================================
# Load environment variables once at module import
_config = dotenv_values(".env")

LOGGER_DEFAULTS = {
    'LOG_LEVEL':                       'INFO',
    'LOG_FORMAT':                      '%(asctime)s - %(levelname)s - %(name)s - %(message)s',
    'LOG_DATE_FORMAT':                 '%Y-%m-%dT%H:%M:%S',
    'LOG_CONSOLE_HIGHLIGHTING':        'True',
    'LOG_FILE_OUTPUT':                 'False',
}

LOG_MAX_FILE_SIZE = 10 * 1024 * 1024 # 10MB
LOG_BACKUP_COUNT = 5


# WARNING: CHANGING THE VALUES BELOW CHANGES THE VOTING RULES. A LEDGER EXPORTED UNDER ONE SET OF
# VALUES WILL FAIL ITS AUDIT WHEN IMPORTED UNDER ANOTHER.

# ==================================================================================
# QUADRATIC VOTING PARAMETERS
# ==================================================================================
# Credit budget granted to every voter on registration. Holding a net
# position of n votes costs n**2 credits, so |n| can never exceed 10.
INITIAL_CREDITS = 100

# Deposit locked in the token ledger while an account is registered.
REGISTRATION_DEPOSIT = Decimal(1000)

# Proposal identifiers are opaque bytes; str identifiers are encoded with this.
PROPOSAL_ID_ENCODING = 'utf-8'


# ==================================================================================
# EVENT NAMES
# ==================================================================================
EVENT_PROPOSAL_ADDED = 'ProposalAdded'
EVENT_USER_REGISTERED = 'UserRegistered'
EVENT_USER_UNREGISTERED = 'UserUnregistered'
EVENT_VOTE_DEPOSITED = 'VoteDeposited'


# ==================================================================================
# VALIDATION PATTERNS
# ==================================================================================
# Account identifiers accepted by SignedOriginAuth: printable, no whitespace
VALID_ACCOUNT_PATTERN = re.compile(r'^[\x21-\x7e]{1,128}$')


# ==================================================================================
# CONFIGURATION WRAPPERS
# ==================================================================================
class ConfigString(str):
    """
    String subclass that stores a default value.
    """
    def __new__(cls, value, default):
        obj = str.__new__(cls, value)
        obj._default = default
        return obj

    def default(self):
        return self._default

class ConfigBool(int):
    """
    Int subclass acting as a boolean that stores a default value.
    """
    def __new__(cls, value, default):
        obj = int.__new__(cls, bool(value))
        obj._default = default
        return obj

    def default(self):
        return self._default

    def __repr__(self):
        return str(bool(self))

    def __str__(self):
        return str(bool(self))

    def __eq__(self, other):
        return bool(self) == other

    __hash__ = int.__hash__


# ==================================================================================
# DYNAMIC CONFIGURATION LOADING
# ==================================================================================
DEFAULTS = dict(LOGGER_DEFAULTS)
namespace = globals()

def parse_bool(v):
    """
    Convert "True"/"False" (any casing, with surrounding whitespace) into bool.
    Avoids exceptions by only calling ast.literal_eval for known literals.
    """
    if not isinstance(v, str):
        return v
    s = v.strip()
    if not s:
        return v
    if s.casefold() in {"true", "false"}:
        # ast.literal_eval expects "True"/"False"
        return ast.literal_eval(s.title())
    return v

for key, default_raw in DEFAULTS.items():
    # dotenv_values returns strings or None. None is treated as missing.
    raw = _config.get(key)
    value_raw = default_raw if raw is None else raw

    value = parse_bool(value_raw)
    default_val = parse_bool(default_raw)

    if isinstance(value, bool):
        namespace[key] = ConfigBool(value, default_val)
    else:
        namespace[key] = ConfigString(value_raw, default_val)
