from dataclasses import dataclass, field, fields, MISSING
from datetime import datetime, timezone
from enum import Enum
from typing import Dict, Any, TypeVar, Type, Callable, Optional, List
import re

T = TypeVar('T')

# Zero value of a Go time.Time as it appears on the wire
GO_ZERO_TIME = "0001-01-01T00:00:00Z"

_RFC3339_RE = re.compile(r'^(?P<base>\d{4}-\d\d-\d\dT\d\d:\d\d:\d\d)(?P<frac>\.\d+)?(?P<tz>Z|[+-]\d\d:\d\d)?$')


def wire(key: str, default: Any = None, default_factory: Optional[Callable[[], Any]] = None,
         omitempty: bool = False, decode: Optional[Callable[[Any], Any]] = None,
         encode: Optional[Callable[[Any], Any]] = None):
    """Declare a dataclass field together with its wire key.

    Args:
        key: JSON key used in the admin API document
        default: Default value (ignored when default_factory is given)
        default_factory: Factory for mutable defaults
        omitempty: Drop the key from the encoded document when the value is empty
        decode: Converter applied to the raw JSON value
        encode: Converter applied when producing the JSON value
    """
    metadata = {'wire_key': key, 'omitempty': omitempty, 'decode': decode, 'encode': encode}
    if default_factory is not None:
        return field(default_factory=default_factory, metadata=metadata)
    return field(default=default, metadata=metadata)


def as_int(value: Any) -> int:
    """Accept JSON integers (and whole floats), reject everything else"""
    if isinstance(value, bool):
        raise TypeError(f"expected integer, got boolean {value!r}")
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value == int(value):
        return int(value)
    raise TypeError(f"expected integer, got {type(value).__name__} {value!r}")


def as_float(value: Any) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise TypeError(f"expected number, got {type(value).__name__} {value!r}")
    return float(value)


def as_str(value: Any) -> str:
    if not isinstance(value, str):
        raise TypeError(f"expected string, got {type(value).__name__} {value!r}")
    return value


def as_bool(value: Any) -> bool:
    if not isinstance(value, bool):
        raise TypeError(f"expected boolean, got {type(value).__name__} {value!r}")
    return value


def list_of(decoder: Callable[[Any], Any]) -> Callable[[Any], List[Any]]:
    """Build a decoder for a JSON array whose items are decoded by decoder"""
    def decode(value: Any) -> List[Any]:
        if not isinstance(value, list):
            raise TypeError(f"expected array, got {type(value).__name__}")
        return [decoder(item) for item in value]
    return decode


def map_of(decoder: Callable[[Any], Any]) -> Callable[[Any], Dict[str, Any]]:
    """Build a decoder for a JSON object whose values are decoded by decoder"""
    def decode(value: Any) -> Dict[str, Any]:
        if not isinstance(value, dict):
            raise TypeError(f"expected object, got {type(value).__name__}")
        return {str(key): decoder(item) for key, item in value.items()}
    return decode


def parse_time(value: Any) -> Optional[datetime]:
    """Parse an RFC 3339 timestamp as emitted by the server.

    The Go zero time decodes to None. Fractional seconds beyond microsecond
    precision are truncated.
    """
    if value is None:
        return None
    value = as_str(value)
    if value.startswith("0001-01-01T00:00:00"):
        return None

    match = _RFC3339_RE.match(value)
    if not match:
        raise ValueError(f"invalid RFC 3339 timestamp: {value!r}")

    frac = match.group('frac')
    frac = '.' + frac[1:7].ljust(6, '0') if frac else ''
    tz = match.group('tz') or 'Z'
    if tz == 'Z':
        tz = '+00:00'
    return datetime.fromisoformat(f"{match.group('base')}{frac}{tz}")


def format_time(value: Optional[datetime]) -> str:
    """Format a datetime for the wire, None becomes the Go zero time"""
    if value is None:
        return GO_ZERO_TIME
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).isoformat().replace('+00:00', 'Z')


int_list = list_of(as_int)
str_list = list_of(as_str)
int_map = map_of(as_int)
str_map = map_of(as_str)
time_list = list_of(parse_time)


def encode_value(value: Any) -> Any:
    """Convert a model value to its JSON-compatible form"""
    if hasattr(value, 'to_api_response'):
        return value.to_api_response()
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, datetime):
        return format_time(value)
    if isinstance(value, dict):
        return {str(key): encode_value(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [encode_value(item) for item in value]
    return value


def _is_empty(value: Any) -> bool:
    """Go's notion of an empty value for omitempty"""
    if value is None:
        return True
    if isinstance(value, BaseModel):
        return value.is_zero()
    if isinstance(value, datetime):
        return False
    if isinstance(value, (bool, int, float)):
        return value == 0
    if hasattr(value, '__len__'):
        return len(value) == 0
    return False


def _default_decoder(model_field) -> Optional[Callable[[Any], Any]]:
    """Infer a scalar type check from the field default"""
    default = model_field.default
    if default is MISSING or default is None:
        return None
    if isinstance(default, bool):
        return as_bool
    if isinstance(default, int):
        return as_int
    if isinstance(default, float):
        return as_float
    if isinstance(default, str):
        return as_str
    return None


@dataclass
class BaseModel:
    """
    Base model for admin API documents.

    Every subclass declares its fields with wire(), which records the JSON key,
    whether the key is omitted when empty, and how nested values are decoded.
    from_api_response() and to_api_response() are driven entirely by that
    metadata, so a model never needs hand-written conversion code.
    """
    _raw_data: Dict[str, Any] = field(default_factory=dict, repr=False, compare=False)

    @classmethod
    def from_api_response(cls: Type[T], data: Optional[Dict[str, Any]]) -> T:
        """Create an instance from API response data.

        Raises:
            TypeError: data (or one of its values) has the wrong JSON type
            ValueError: a value is malformed or violates a model invariant
        """
        if data is None:
            data = {}
        if not isinstance(data, dict):
            raise TypeError(f"{cls.__name__} expects a JSON object, got {type(data).__name__}")

        instance_args = {}
        for model_field in fields(cls):
            key = model_field.metadata.get('wire_key')
            if key is None or key not in data:
                continue

            raw_value = data[key]
            if raw_value is None:
                # JSON null leaves the default in place
                continue

            decoder = model_field.metadata.get('decode') or _default_decoder(model_field)
            try:
                instance_args[model_field.name] = decoder(raw_value) if decoder else raw_value
            except (TypeError, ValueError) as e:
                raise type(e)(f"{cls.__name__}.{key}: {e}") from e

        instance_args['_raw_data'] = data.copy()
        return cls(**instance_args)

    def to_api_response(self) -> Dict[str, Any]:
        """Encode the model using its wire keys, dropping empty omitempty fields"""
        result: Dict[str, Any] = {}
        for model_field in fields(self):
            key = model_field.metadata.get('wire_key')
            if key is None:
                continue

            value = getattr(self, model_field.name)
            if model_field.metadata.get('omitempty') and self._omit(model_field, value):
                continue

            encoder = model_field.metadata.get('encode')
            result[key] = encoder(value) if encoder else encode_value(value)
        return result

    @staticmethod
    def _omit(model_field, value: Any) -> bool:
        # Nested records declared with default=None behave like pointers and are
        # only omitted when absent; value records are omitted when all-zero.
        if isinstance(value, BaseModel) and model_field.default is not MISSING:
            return False
        return _is_empty(value)

    def is_zero(self) -> bool:
        """True when every wire field holds its zero value"""
        for model_field in fields(self):
            if model_field.metadata.get('wire_key') is None:
                continue
            if not _is_empty(getattr(self, model_field.name)):
                return False
        return True

    def get_raw(self, key: str, default: Any = None) -> Any:
        """Access any field from the raw data"""
        return self._raw_data.get(key, default)
