from enum import Enum


class Asset(str, Enum):
    ATOM = "atom"
    ATONE = "atone"


class SourceKind(str, Enum):
    SWAPS = "swaps"
    ATOM_BASE = "atom_base"
    ATONE_BASE = "atone_base"


class SourcePath(str, Enum):
    PRIMARY = "PRIMARY"
    FALLBACK = "FALLBACK"
    EXHAUSTED = "EXHAUSTED"


class SwapCategory(str, Enum):
    CROSS = "cross"
    ATOM_ONLY = "atomOnly"
    ATONE_ONLY = "atoneOnly"
    OTHER = "other"


class Bias(str, Enum):
    ATOM = "ATOM"
    ATOMONE = "ATOMONE"
    MIXED = "MIXED"


class Timing(str, Enum):
    LEADING = "LEADING"
    LAGGING = "LAGGING"
    SYNC = "SYNC"
