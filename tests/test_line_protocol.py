import pytest

from tsdb_tools.errors import LineParseError
from tsdb_tools.line_protocol import (
    escape_key,
    escape_measurement,
    parse_line,
    parse_lines,
    quote_string,
)
from tsdb_tools.value import Value, ValueKind


def test_parse_full_line():
    point = parse_line(
        'cpu,host=a\\ b,region=eu value=1.5,count=3i,big=4u,ok=t,'
        'msg="hi, \\"there\\"" 1451606400000000000\n'
    )
    assert point.measurement == "cpu"
    assert point.tags == [("host", "a b"), ("region", "eu")]
    assert point.fields == [
        ("value", Value.float64(1.5)),
        ("count", Value.int64(3)),
        ("big", Value.uint64(4)),
        ("ok", Value.boolean(True)),
        ("msg", Value.string('hi, "there"')),
    ]
    assert point.timestamp == 1451606400000000000


def test_parse_line_without_tags_or_timestamp():
    point = parse_line("mem used=10i")
    assert point.measurement == "mem"
    assert point.tags == []
    assert point.fields == [("used", Value.int64(10))]
    assert point.timestamp is None


def test_duplicate_tags_are_kept_in_order():
    point = parse_line("m,a=1,a=2 f=1")
    assert point.tags == [("a", "1"), ("a", "2")]


def test_escaped_measurement_and_keys():
    point = parse_line('my\\ meas\\,x,ta\\=g=v\\,1 fi\\ eld="a=b c" -5')
    assert point.measurement == "my meas,x"
    assert point.tags == [("ta=g", "v,1")]
    assert point.fields == [("fi eld", Value.string("a=b c"))]
    assert point.timestamp == -5


def test_string_field_with_escaped_backslash():
    point = parse_line('m path="C:\\\\tmp"')
    assert point.fields == [("path", Value.string("C:\\tmp"))]


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("t", True),
        ("T", True),
        ("true", True),
        ("True", True),
        ("TRUE", True),
        ("f", False),
        ("F", False),
        ("false", False),
        ("False", False),
        ("FALSE", False),
    ],
)
def test_boolean_literals(raw, expected):
    point = parse_line(f"m flag={raw}")
    assert point.fields == [("flag", Value.boolean(expected))]


@pytest.mark.parametrize(
    "raw, expected", [("1e3", 1000.0), ("-.5", -0.5), ("2.", 2.0), ("7", 7.0)]
)
def test_bare_numbers_are_floats(raw, expected):
    (_, value), = parse_line(f"m v={raw}").fields
    assert value.kind is ValueKind.FLOAT64
    assert value.data == expected


@pytest.mark.parametrize("line", ["", "   ", "\n", "# comment", "  # indented"])
def test_blank_and_comment_lines_yield_nothing(line):
    assert parse_line(line) is None


@pytest.mark.parametrize(
    "line",
    [
        "cpu",
        "cpu,host=a",
        "cpu,host=a ",
        "cpu value=",
        "cpu value=abc",
        "cpu value=1x",
        "cpu value=1 notatime",
        "cpu value=1 123 extra",
        'cpu value="unterminated',
        'cpu value="a"b',
        "cpu,=x f=1",
        "cpu,host= f=1",
        "cpu =1",
        ",host=a f=1",
        "cpu value=9223372036854775808i",
        "cpu value=-1u",
        "cpu value=18446744073709551616u",
        "cpu value=1 99999999999999999999",
    ],
)
def test_malformed_lines_raise(line):
    with pytest.raises(LineParseError):
        parse_line(line)


def test_parse_lines_reports_line_number():
    text = "m f=1\n\n# c\nm nofields\n"
    points = parse_lines(text)
    assert next(points).fields == [("f", Value.float64(1.0))]
    with pytest.raises(LineParseError) as excinfo:
        next(points)
    assert excinfo.value.lineno == 4
    assert excinfo.value.line == "m nofields"


def test_parse_lines_skips_comments():
    points = list(parse_lines("# header\na v=1i\n\nb v=2i 10\n"))
    assert [p.measurement for p in points] == ["a", "b"]
    assert points[1].timestamp == 10


def test_escape_helpers():
    assert escape_measurement("my meas,x=1") == "my\\ meas\\,x=1"
    assert escape_key("a b,c=d") == "a\\ b\\,c\\=d"
    assert quote_string('say "hi"') == '"say \\"hi\\""'


def test_escape_helpers_double_backslashes():
    assert escape_measurement("dir\\") == "dir\\\\"
    assert escape_key("C:\\dir\\") == "C:\\\\dir\\\\"


def test_escaped_names_parse_back():
    field_value = quote_string('a "b"')
    line = (
        f"{escape_measurement('my meas,x')},{escape_key('t k')}={escape_key('v=1')} "
        f"{escape_key('f,k')}={field_value}"
    )
    point = parse_line(line)
    assert point.measurement == "my meas,x"
    assert point.tags == [("t k", "v=1")]
    assert point.fields == [("f,k", Value.string('a "b"'))]


def test_trailing_backslash_in_names_parses_back():
    measurement = escape_measurement("m\\")
    tag = escape_key("C:\\dir\\")
    point = parse_line(f"{measurement},path={tag} v=1")
    assert point.measurement == "m\\"
    assert point.tags == [("path", "C:\\dir\\")]
    assert point.fields == [("v", Value.float64(1.0))]


def test_parse_lines_only_splits_on_newline():
    points = list(parse_lines('m s="a\u2028b"\nm s="c\x0cd"\n'))
    assert [p.fields for p in points] == [
        [("s", Value.string("a\u2028b"))],
        [("s", Value.string("c\x0cd"))],
    ]
