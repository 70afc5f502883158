from __future__ import annotations

import enum
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import TYPE_CHECKING, NewType, Optional

import pytest

from pyenvtag import (
    EnvError,
    Float32,
    Float64,
    Int8,
    Int16,
    Int32,
    Int64,
    InvalidTagOptionError,
    InvalidTypeError,
    ParseError,
    Ref,
    RequirementError,
    UInt,
    UInt8,
    UInt16,
    UInt32,
    UInt64,
    decode,
    env_field,
    separator,
    unmarshal,
)
from pyenvtag.errors import NumError

if TYPE_CHECKING:
    from decimal import Decimal


class Custom:
    def __init__(self, value: int = 0) -> None:
        self.value = value

    def unmarshal_env(self, data: bytes) -> None:
        self.value = int(data.decode(), 10)

    def __eq__(self, other: object) -> bool:
        return isinstance(other, Custom) and other.value == self.value


class CustomText:
    def __init__(self) -> None:
        self.value = 0

    def unmarshal_text(self, data: bytes) -> None:
        self.value = int(data.decode(), 10)


class Both:
    def __init__(self) -> None:
        self.calls: list[str] = []

    def unmarshal_env(self, data: bytes) -> None:
        self.calls.append("env")

    def unmarshal_text(self, data: bytes) -> None:
        self.calls.append("text")


class Color(enum.Enum):
    RED = "red"


class Level(enum.IntEnum):
    LOW = 1
    HIGH = 2


class Mode(str, enum.Enum):
    FAST = "fast"
    SAFE = "safe"


Port = NewType("Port", int)


@dataclass
class OptionalEnv:
    ptr_string: Optional[str] = env_field("PTR_STRING", default=None)
    string: str = env_field("STRING", default="")
    boolean: bool = env_field("BOOL", default=False)
    int8: Int8 = env_field("INT8", default=0)
    int16: Int16 = env_field("INT16", default=0)
    int32: Int32 = env_field("INT32", default=0)
    int64: Int64 = env_field("INT64", default=0)
    integer: int = env_field("INT", default=0)
    uint8: UInt8 = env_field("UINT8", default=0)
    uint16: UInt16 = env_field("UINT16", default=0)
    uint32: UInt32 = env_field("UINT32", default=0)
    uint64: UInt64 = env_field("UINT64", default=0)
    uint: UInt = env_field("UINT", default=0)
    float32: Float32 = env_field("FLOAT32", default=0.0)
    float64: Float64 = env_field("FLOAT64", default=0.0)
    duration: timedelta = env_field("DURATION", default=timedelta(0))
    time: Optional[datetime] = env_field("TIME", default=None)
    string_slice: list[str] = env_field("STRING_SLICE", sep=";", default_factory=list)
    duration_slice: list[timedelta] = env_field("DURATION_SLICE", default_factory=list)
    unmarshaler: Custom = env_field("UNMARSHALER", default_factory=Custom)
    ptr_unmarshaler: Ref[Custom] = env_field("PTR_UNMARSHALER", default_factory=Ref)
    text_unmarshaler: CustomText = env_field("TEXT_UNMARSHALER", default_factory=CustomText)
    pointers: Ref[Ref[Ref[int]]] = env_field("POINTERS", default_factory=Ref)
    AnonymousInt: int = 0


def _decode(values: dict[str, str]) -> OptionalEnv:
    out = OptionalEnv()
    decode(lambda key: (values.get(key, ""), key in values), out)
    return out


@pytest.mark.parametrize(
    "name, values, expected",
    [
        ("int8", {"INT8": "42"}, 42),
        ("int8", {"INT8": "0x0f"}, 0x0F),
        ("int8", {"INT8": "0o12"}, 0o12),
        ("int8", {"INT8": "0b1101101"}, 0b1101101),
        ("int16", {"INT16": "0x0fff"}, 0x0FFF),
        ("int16", {"INT16": "0b110110100000000"}, 0b1101101_00000000),
        ("int32", {"INT32": "0x0fffffff"}, 0x0FFFFFFF),
        ("int64", {"INT64": "0o1234567"}, 0o1234567),
        ("integer", {"INT": "75535"}, 75535),
        ("uint8", {"UINT8": "42"}, 42),
        ("uint16", {"UINT16": "0xffff"}, 0xFFFF),
        ("uint32", {"UINT32": "0xffffffff"}, 0xFFFF_FFFF),
        ("uint64", {"UINT64": "0xffffffffffffffff"}, 0xFFFFFFFF_FFFFFFFF),
        ("uint", {"UINT": "0xffffffff"}, 0xFFFF_FFFF),
        ("float64", {"FLOAT64": "3.14"}, 3.14),
        ("string", {"STRING": "Hello World"}, "Hello World"),
        ("ptr_string", {"PTR_STRING": "Hello World"}, "Hello World"),
        ("boolean", {"BOOL": "1"}, True),
        ("boolean", {"BOOL": "true"}, True),
        ("boolean", {"BOOL": "t"}, True),
        ("duration", {"DURATION": "5s"}, timedelta(seconds=5)),
        ("duration", {"DURATION": "5m"}, timedelta(minutes=5)),
        ("duration", {"DURATION": "5h"}, timedelta(hours=5)),
        ("time", {"TIME": "2021-01-01T00:00:00Z"}, datetime(2021, 1, 1, tzinfo=timezone.utc)),
        ("AnonymousInt", {"ANONYMOUS_INT": "42"}, 42),
        ("string_slice", {"STRING_SLICE": "Hello;World"}, ["Hello", "World"]),
        (
            "duration_slice",
            {"DURATION_SLICE": "5s,5m,5h"},
            [timedelta(seconds=5), timedelta(minutes=5), timedelta(hours=5)],
        ),
        ("unmarshaler", {"UNMARSHALER": "42"}, Custom(42)),
        ("ptr_unmarshaler", {"PTR_UNMARSHALER": "42"}, Ref(Custom(42))),
        ("pointers", {"POINTERS": "42"}, Ref(Ref(Ref(42)))),
    ],
)
def test_optional_keys_parse_values(name: str, values: dict[str, str], expected) -> None:
    out = _decode(values)
    assert getattr(out, name) == expected


def test_float32_is_single_precision() -> None:
    out = _decode({"FLOAT32": "3.14"})
    assert out.float32 == pytest.approx(3.14, rel=1e-6)


def test_text_unmarshaler() -> None:
    out = _decode({"TEXT_UNMARSHALER": "42"})
    assert out.text_unmarshaler.value == 42


def test_pointer_chain_is_allocated() -> None:
    out = _decode({"POINTERS": "42"})
    assert isinstance(out.pointers, Ref)
    assert isinstance(out.pointers.value, Ref)
    assert isinstance(out.pointers.value.value, Ref)
    assert out.pointers.value.value.value == 42


def test_existing_reference_is_reused() -> None:
    out = OptionalEnv()
    inner = Ref()
    out.pointers = Ref(inner)
    decode(lambda key: ("7", key == "POINTERS"), out)
    assert out.pointers.value is inner
    assert inner.value.value == 7


def test_unset_fields_keep_defaults() -> None:
    out = OptionalEnv(string="keep", integer=9, string_slice=["x"])
    decode(lambda key: ("5s", key == "DURATION"), out)
    assert out.string == "keep"
    assert out.integer == 9
    assert out.string_slice == ["x"]
    assert out.ptr_string is None
    assert out.duration == timedelta(seconds=5)


@pytest.mark.parametrize(
    "values",
    [
        {"INT8": "128"},
        {"INT8": "abc"},
        {"UINT8": "-1"},
        {"BOOL": "maybe"},
        {"FLOAT64": "pi"},
        {"DURATION": "5"},
        {"TIME": "yesterday"},
        {"UNMARSHALER": "4x"},
        {"DURATION_SLICE": "5s,nope"},
        {"POINTERS": "x"},
    ],
)
def test_bad_values_raise_parse_error(values: dict[str, str]) -> None:
    with pytest.raises(ParseError) as info:
        _decode(values)
    err = info.value
    (key, raw), = values.items()
    assert err.key == key
    assert err.value == raw
    assert err.__cause__ is err.error


def test_parse_error_exposes_cause() -> None:
    with pytest.raises(ParseError) as info:
        _decode({"BOOL": "maybe"})
    assert isinstance(info.value.error, NumError)
    assert info.value.type is bool
    assert "BOOL" in str(info.value)


def test_slice_element_error_is_wrapped() -> None:
    with pytest.raises(ParseError) as info:
        _decode({"DURATION_SLICE": "5s,nope"})
    inner = info.value.error
    assert isinstance(inner, ParseError)
    assert inner.value == "nope"
    assert info.value.value == "5s,nope"


def test_partial_mutation_on_error() -> None:
    out = OptionalEnv()
    values = {"STRING": "first", "INT8": "999", "UINT8": "1"}
    with pytest.raises(ParseError):
        decode(lambda key: (values.get(key, ""), key in values), out)
    assert out.string == "first"
    assert out.int8 == 0
    assert out.uint8 == 0


@dataclass
class RequiredEnv:
    name: str = env_field("REQ_NAME", required=True, default="")
    hosts: list[str] = env_field("REQ_HOSTS", required=True, sep=";", default_factory=list)


def test_required_key_not_set() -> None:
    with pytest.raises(RequirementError) as info:
        decode(lambda key: ("", False), RequiredEnv())
    assert info.value.key == "REQ_NAME"
    assert info.value.type is str


def test_required_key_set(make_lookup) -> None:
    out = RequiredEnv()
    decode(make_lookup({"REQ_NAME": "svc", "REQ_HOSTS": "a;b;c"}), out)
    assert out.name == "svc"
    assert out.hosts == ["a", "b", "c"]


@dataclass
class BadTag:
    first: str = ""
    value: int = field(default=0, metadata={"env": "KEY,bogus"})


def test_invalid_tag_option(make_lookup) -> None:
    lookup = make_lookup({"KEY": "1"})
    out = BadTag()
    with pytest.raises(InvalidTagOptionError) as info:
        decode(lookup, out)
    err = info.value
    assert err.option == "bogus"
    assert err.key == "KEY"
    assert err.field is not None and err.field.name == "value"
    assert out.value == 0
    assert lookup.calls == ["FIRST", "KEY"]


@dataclass
class Inner:
    x: int = 0


@dataclass
class Unsupported:
    inner: Inner = env_field("INNER", default_factory=Inner)
    mapping: dict = env_field("MAPPING", default_factory=dict)


def test_unsupported_field_type() -> None:
    with pytest.raises(InvalidTypeError) as info:
        decode(lambda key: ("x", key == "INNER"), Unsupported())
    assert info.value.key == "INNER"
    assert info.value.type is Inner
    with pytest.raises(InvalidTypeError):
        decode(lambda key: ("x", key == "MAPPING"), Unsupported())


def test_unsupported_type_not_set_is_skipped() -> None:
    decode(lambda key: ("", False), Unsupported())


def test_non_dataclass_target() -> None:
    with pytest.raises(InvalidTypeError):
        decode(lambda key: ("", False), {"a": 1})
    with pytest.raises(InvalidTypeError):
        decode(lambda key: ("", False), OptionalEnv)


def test_none_target_is_noop() -> None:
    unmarshal(None)


def test_empty_top_level_reference_fails() -> None:
    with pytest.raises(EnvError) as info:
        decode(lambda key: ("", False), Ref())
    assert not isinstance(info.value, InvalidTypeError)


def test_top_level_reference_chain() -> None:
    out = OptionalEnv()
    decode(lambda key: ("hi", key == "STRING"), Ref(Ref(out)))
    assert out.string == "hi"


@dataclass
class Private:
    _secret: str = "untouched"
    shown: str = ""


def test_private_fields_are_skipped(make_lookup) -> None:
    lookup = make_lookup({"_SECRET": "x", "SHOWN": "y"})
    out = Private()
    decode(lookup, out)
    assert out._secret == "untouched"
    assert out.shown == "y"
    assert lookup.calls == ["SHOWN"]


@dataclass(frozen=True)
class Frozen:
    name: str = ""


def test_frozen_dataclass_cannot_be_set() -> None:
    with pytest.raises(EnvError):
        decode(lambda key: ("x", True), Frozen())


@dataclass
class Kinds:
    mode: Mode = Mode.SAFE
    level: Level = Level.LOW
    port: Port = Port(0)
    color: Color = Color.RED
    ids: tuple[int, ...] = ()
    maybe: Optional[Int8] = None
    both: Both = field(default_factory=Both)


def test_subclass_kinds(make_lookup) -> None:
    out = Kinds()
    decode(make_lookup({"MODE": "fast", "LEVEL": "2", "PORT": "0x50", "IDS": "1,2,3"}), out)
    assert out.mode is Mode.FAST
    assert out.level is Level.HIGH
    assert out.port == 80
    assert out.ids == (1, 2, 3)


def test_enum_value_error_is_parse_error(make_lookup) -> None:
    with pytest.raises(ParseError):
        decode(make_lookup({"MODE": "slow"}), Kinds())


def test_plain_enum_is_unsupported(make_lookup) -> None:
    with pytest.raises(InvalidTypeError):
        decode(make_lookup({"COLOR": "red"}), Kinds())


def test_optional_width_is_checked(make_lookup) -> None:
    out = Kinds()
    decode(make_lookup({"MAYBE": "-5"}), out)
    assert out.maybe == -5
    with pytest.raises(ParseError):
        decode(make_lookup({"MAYBE": "300"}), Kinds())


def test_custom_decoder_takes_precedence(make_lookup) -> None:
    out = Kinds()
    decode(make_lookup({"BOTH": "x"}), out)
    assert out.both.calls == ["env"]


def test_separator_option_applies_to_untagged_lists(make_lookup) -> None:
    out = Kinds()
    decode(make_lookup({"IDS": "1:2"}), out, separator(":"))
    assert out.ids == (1, 2)


def test_empty_separator_is_rejected(make_lookup) -> None:
    with pytest.raises(ParseError) as info:
        decode(make_lookup({"IDS": "12"}), Kinds(), separator(""))
    assert "empty separator" in str(info.value.error)


def test_unmarshal_reads_process_environment(monkeypatch) -> None:
    monkeypatch.setenv("REQ_NAME", "from-env")
    monkeypatch.setenv("REQ_HOSTS", "h1;h2")
    out = RequiredEnv()
    unmarshal(out)
    assert out.name == "from-env"
    assert out.hosts == ["h1", "h2"]


def test_unmarshal_required_missing(monkeypatch) -> None:
    monkeypatch.delenv("REQ_NAME", raising=False)
    with pytest.raises(RequirementError):
        unmarshal(RequiredEnv())


class MyTime(datetime):
    pass


class MyDelta(timedelta):
    pass


@dataclass
class Subclassed:
    when: Optional[MyTime] = None
    wait: Optional[MyDelta] = None


@pytest.mark.parametrize(
    "values, expected_type",
    [
        ({"WHEN": "2021-01-01T00:00:00Z"}, MyTime),
        ({"WAIT": "5s"}, MyDelta),
    ],
)
def test_time_types_match_exactly(make_lookup, values, expected_type) -> None:
    out = Subclassed()
    with pytest.raises(InvalidTypeError) as info:
        decode(make_lookup(values), out)
    assert info.value.type is expected_type
    assert out.when is None and out.wait is None


@dataclass
class Deferred:
    name: str = ""
    amount: Optional[Decimal] = None


def test_unresolved_annotation_only_fails_when_set(make_lookup) -> None:
    out = Deferred()
    decode(make_lookup({"NAME": "svc"}), out)
    assert out.name == "svc"
    assert out.amount is None
    with pytest.raises(InvalidTypeError) as info:
        decode(make_lookup({"AMOUNT": "1.5"}), Deferred())
    assert info.value.key == "AMOUNT"


class Secret(str):
    def unmarshal_env(self, data: bytes) -> None:
        pass


@dataclass
class Immutable:
    secret: Secret = Secret("")


def test_hook_on_immutable_type_is_rejected(make_lookup) -> None:
    decode(make_lookup({}), Immutable())
    with pytest.raises(EnvError) as info:
        decode(make_lookup({"SECRET": "s3cret"}), Immutable())
    assert not isinstance(info.value, ParseError)
    assert "immutable" in str(info.value)
