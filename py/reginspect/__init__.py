from .enums import Endianness, ValueFormat
from .errors import (
    InspectError,
    ConfigError,
    ConfigParseError,
    ConfigValidationError,
    FieldValidationError,
    RegisterValidationError,
    BlockValidationError,
    DeviceReadError,
    UnresolvedValueError,
    ProbeError,
)
from .regmap import Node, Block, Register, Field, walk, iter_registers, value_or_none
from .codec import parse, dump, load, save, to_data
from .probe import probe, ProbeResult
from .report import report, report_legacy
from .target import Target
from .tooltarget import ToolTarget
from .mmaptarget import MMapTarget
from .mocktarget import MockTarget

__version__ = '0.1.0'
