"""
Property-based tests for the bulk record line parser.
"""

from hypothesis import given, settings
from hypothesis import strategies as st

from record_parser import (
    LineRejection,
    RecordIntent,
    RecordLineParser,
    SUPPORTED_TYPES,
    is_valid_domain_format,
    resolve_apex,
)


field_text = st.text(alphabet="abcdefghijklmnopqrstuvwxyz0123456789.-", min_size=1, max_size=12)


@settings(max_examples=100)
@given(fields=st.lists(field_text, min_size=1, max_size=7))
def test_only_three_or_four_fields_can_be_accepted(fields):
    parser = RecordLineParser(strict_types=False)
    outcome = parser.parse_line("|".join(fields))

    if len(fields) in (3, 4):
        assert isinstance(outcome, RecordIntent)
    else:
        assert isinstance(outcome, LineRejection)
        assert f"got {len(fields)} field(s)" in outcome.reason


@settings(max_examples=50)
@given(
    record_type=st.sampled_from(SUPPORTED_TYPES),
    name=field_text,
    content=field_text,
)
def test_accepted_lines_keep_their_fields(record_type, name, content):
    if record_type == "MX":
        content = f"10 {content}"
    outcome = RecordLineParser().parse_line(f"{record_type.lower()}|{name}|{content}")

    assert isinstance(outcome, RecordIntent)
    assert outcome.type == record_type
    assert outcome.name == name
    assert outcome.content == content


@settings(max_examples=50)
@given(lines=st.lists(st.sampled_from([
    "A|www|192.0.2.1",
    "BAD LINE",
    "CNAME|blog|@|true",
    "A|x",
    "TXT|@|v=spf1 -all|false",
]), min_size=1, max_size=10))
def test_every_line_gets_one_outcome_in_input_order(lines):
    result = RecordLineParser().parse("\n".join(lines))

    assert len(result.outcomes) == len(lines)
    assert [o.line_number for o in result.outcomes] == list(range(1, len(lines) + 1))
    expected_rejections = [i + 1 for i, line in enumerate(lines) if line in ("BAD LINE", "A|x")]
    assert [r.line_number for r in result.rejections] == expected_rejections


def test_valid_batch_with_default_proxied():
    result = RecordLineParser().parse("A|www|192.0.2.1\nCNAME|blog|@|true", default_proxied=False)

    assert result.ok
    assert not result.blocks_submission
    assert [i.to_dict() for i in result.intents] == [
        {"type": "A", "name": "www", "content": "192.0.2.1", "proxied": False},
        {"type": "CNAME", "name": "blog", "content": "@", "proxied": True},
    ]


def test_malformed_line_blocks_the_batch():
    result = RecordLineParser().parse("A|www|192.0.2.1\nBAD LINE\nCNAME|blog|@")

    assert result.blocks_submission
    assert len(result.rejections) == 1
    rejection = result.rejections[0]
    assert rejection.line_number == 2
    assert rejection.line == "BAD LINE"
    assert str(rejection).startswith("Line 2: Invalid format 'BAD LINE'")


def test_lenient_batch_sends_accepted_lines():
    result = RecordLineParser(validate_all=False).parse("A|www|192.0.2.1\nBAD LINE")

    assert not result.blocks_submission
    assert len(result.intents) == 1
    assert len(result.rejections) == 1


def test_blank_lines_are_ignored_but_counted():
    result = RecordLineParser().parse("\n  \nA|www|192.0.2.1\n\nBAD\n")

    assert len(result.outcomes) == 2
    assert result.intents[0].line_number == 3
    assert result.rejections[0].line_number == 5


def test_empty_input_blocks_submission():
    result = RecordLineParser().parse("  \n\n")
    assert result.outcomes == []
    assert result.blocks_submission


def test_strict_types_reject_unknown_type_and_short_mx():
    parser = RecordLineParser(strict_types=True)

    unknown = parser.parse_line("FOO|www|x")
    assert isinstance(unknown, LineRejection)
    assert unknown.reason.startswith("Invalid record type: FOO")

    short_mx = parser.parse_line("MX|@|mail.example.com")
    assert isinstance(short_mx, LineRejection)
    assert "priority" in short_mx.reason

    assert isinstance(parser.parse_line("MX|@|10 mail.example.com"), RecordIntent)


def test_lenient_types_accept_unknown_type():
    outcome = RecordLineParser(strict_types=False).parse_line("foo|www|x")
    assert isinstance(outcome, RecordIntent)
    assert outcome.type == "FOO"


def test_proxied_flag_values():
    parser = RecordLineParser()
    assert parser.parse_line("A|a|1.2.3.4|YES").proxied is True
    assert parser.parse_line("A|a|1.2.3.4|1").proxied is True
    assert parser.parse_line("A|a|1.2.3.4|no").proxied is False
    assert parser.parse_line("A|a|1.2.3.4", default_proxied=True).proxied is True
    assert isinstance(parser.parse_line("A|a|1.2.3.4|maybe"), LineRejection)
    assert RecordLineParser(strict_types=False).parse_line("A|a|1.2.3.4|maybe").proxied is False


def test_missing_fields_are_named():
    outcome = RecordLineParser().parse_line("A||1.2.3.4")
    assert isinstance(outcome, LineRejection)
    assert outcome.reason.startswith("Missing NAME")


def test_parse_domains():
    result = RecordLineParser().parse_domains("example.com\n\nnot a domain\nsub.example.org")

    assert result.domains == ["example.com", "sub.example.org"]
    assert [str(r) for r in result.rejections] == ["Line 3: Invalid domain format: not a domain"]
    assert not result.ok


def test_domain_format():
    assert is_valid_domain_format("example.com")
    assert not is_valid_domain_format("a.b")
    assert not is_valid_domain_format("localhost")
    assert not is_valid_domain_format("-bad.com")


def test_resolve_apex():
    assert resolve_apex("@", "example.com") == "example.com"
    assert resolve_apex("target.example.net", "example.com") == "target.example.net"


def test_intent_line_carries_resolved_proxied_flag():
    parser = RecordLineParser()
    assert parser.parse_line("CNAME|www|@", default_proxied=True).to_line() == "CNAME|www|@|true"
    assert parser.parse_line("a|www|192.0.2.1|yes").to_line() == "A|www|192.0.2.1|true"
    assert parser.parse_line("TXT|@|v=spf1 -all").to_line() == "TXT|@|v=spf1 -all|false"


def test_apex_record_with_explicit_proxied():
    outcome = RecordLineParser().parse_line("A|@|192.0.2.1|true")
    assert outcome.to_dict() == {"type": "A", "name": "@", "content": "192.0.2.1", "proxied": True}


def test_three_field_line_defaults_to_not_proxied():
    outcome = RecordLineParser().parse_line("CNAME|www|@")
    assert outcome.to_dict() == {"type": "CNAME", "name": "www", "content": "@", "proxied": False}


def test_two_field_line_names_line_and_expected_format():
    result = RecordLineParser().parse("A|@")
    rejection = result.rejections[0]
    assert rejection.line == "A|@"
    assert "'A|@'" in rejection.reason
    assert "TYPE|NAME|CONTENT[|PROXIED]" in rejection.reason
