#!/usr/bin/env python
# -*- coding: utf-8 -*-

"""
Bulk record line parser for Zone Console.

Turns free text with one ``TYPE|NAME|CONTENT[|PROXIED]`` record per
line into record intents, rejecting malformed lines before anything is sent
to the backend.
"""

import re
import logging
from dataclasses import dataclass, field
from typing import List, Optional, Union

logger = logging.getLogger(__name__)

# Record types accepted when strict type checking is enabled
SUPPORTED_TYPES = ['A', 'AAAA', 'CNAME', 'MX', 'TXT', 'NS', 'SRV', 'CAA', 'PTR']

LINE_FORMAT = "TYPE|NAME|CONTENT[|PROXIED]"
APEX_MARKER = "@"

TRUE_VALUES = ('true', '1', 'yes')
FALSE_VALUES = ('false', '0', 'no', '')

_DOMAIN_RE = re.compile(r'^[a-zA-Z0-9][a-zA-Z0-9-]{0,61}[a-zA-Z0-9]?\.([a-zA-Z]{2,}\.?)+$')


@dataclass
class RecordIntent:
    """A record the user wants to exist, as written on one bulk line."""

    type: str
    name: str
    content: str
    proxied: bool = False
    line: str = ""
    line_number: int = 0

    def to_dict(self):
        return {
            'type': self.type,
            'name': self.name,
            'content': self.content,
            'proxied': self.proxied,
        }

    def to_line(self) -> str:
        """Canonical four-field line with the resolved proxied flag."""
        return f"{self.type}|{self.name}|{self.content}|{str(self.proxied).lower()}"


@dataclass
class LineRejection:
    """A bulk line that could not be accepted."""

    line: str
    line_number: int
    reason: str

    def __str__(self):
        return f"Line {self.line_number}: {self.reason}"


@dataclass
class ParseResult:
    """Outcome of parsing a block of bulk lines, in input order."""

    outcomes: List[Union[RecordIntent, LineRejection]] = field(default_factory=list)
    validate_all: bool = True

    @property
    def intents(self) -> List[RecordIntent]:
        return [o for o in self.outcomes if isinstance(o, RecordIntent)]

    @property
    def rejections(self) -> List[LineRejection]:
        return [o for o in self.outcomes if isinstance(o, LineRejection)]

    @property
    def ok(self) -> bool:
        return not self.rejections

    @property
    def blocks_submission(self) -> bool:
        """True when nothing may be sent: empty input, or a rejection under validate-all."""
        if not self.intents:
            return True
        return self.validate_all and not self.ok

    def error_summary(self) -> str:
        """Every rejection, one per line."""
        return "\n".join(str(r) for r in self.rejections)


@dataclass
class DomainListResult:
    """Outcome of parsing a newline separated list of domains."""

    domains: List[str] = field(default_factory=list)
    rejections: List[LineRejection] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.rejections


class RecordLineParser:
    """Parser and validator for bulk record lines."""

    def __init__(self, strict_types: bool = True, validate_all: bool = True):
        """
        Initialize the parser.

        Args:
            strict_types: Check TYPE against SUPPORTED_TYPES and MX content shape
            validate_all: Any rejection blocks submission of the whole batch
        """
        self.strict_types = strict_types
        self.validate_all = validate_all

    def parse(self, text: str, default_proxied: bool = False) -> ParseResult:
        """
        Parse a block of bulk lines.

        Args:
            text: Raw multi-line input
            default_proxied: Proxied value for lines without a fourth field

        Returns:
            ParseResult with one outcome per non-blank line
        """
        result = ParseResult(validate_all=self.validate_all)
        for line_number, raw_line in enumerate((text or "").splitlines(), start=1):
            line = raw_line.strip()
            if not line:
                continue
            result.outcomes.append(self.parse_line(line, line_number, default_proxied))

        if result.rejections:
            logger.info(f"Parsed {len(result.outcomes)} lines, {len(result.rejections)} rejected")
        else:
            logger.debug(f"Parsed {len(result.outcomes)} lines")
        return result

    def parse_line(self, line: str, line_number: int = 1,
                   default_proxied: bool = False) -> Union[RecordIntent, LineRejection]:
        """
        Parse a single bulk line.

        Args:
            line: Line text without the trailing newline
            line_number: 1-based position in the original input
            default_proxied: Proxied value when the fourth field is absent

        Returns:
            RecordIntent, or LineRejection explaining the problem
        """
        line = line.strip()
        parts = [part.strip() for part in line.split('|')]

        if len(parts) not in (3, 4):
            return LineRejection(
                line, line_number,
                f"Invalid format '{line}': expected {LINE_FORMAT}, got {len(parts)} field(s)"
            )

        record_type, name, content = parts[0].upper(), parts[1], parts[2]
        missing = [label for label, value in (('TYPE', record_type), ('NAME', name), ('CONTENT', content))
                   if not value]
        if missing:
            return LineRejection(line, line_number, f"Missing {', '.join(missing)} in '{line}'")

        if self.strict_types:
            if record_type not in SUPPORTED_TYPES:
                return LineRejection(
                    line, line_number,
                    f"Invalid record type: {record_type}. Supported types: {', '.join(SUPPORTED_TYPES)}"
                )
            if record_type == 'MX' and len(content.split()) < 2:
                return LineRejection(
                    line, line_number,
                    "MX record content must include priority (e.g., '10 mail.example.com')"
                )

        proxied = default_proxied
        if len(parts) == 4:
            flag = parts[3].lower()
            if flag in TRUE_VALUES:
                proxied = True
            elif flag in FALSE_VALUES:
                proxied = False
            elif self.strict_types:
                return LineRejection(line, line_number, f"Invalid proxied flag '{parts[3]}', expected true or false")
            else:
                proxied = False

        return RecordIntent(record_type, name, content, proxied, line, line_number)

    def parse_domains(self, text: str) -> DomainListResult:
        """
        Parse a newline separated list of domains to add.

        Args:
            text: Raw multi-line input

        Returns:
            DomainListResult with accepted domains and rejected lines
        """
        result = DomainListResult()
        for line_number, raw_line in enumerate((text or "").splitlines(), start=1):
            domain = raw_line.strip()
            if not domain:
                continue
            if is_valid_domain_format(domain):
                result.domains.append(domain)
            else:
                result.rejections.append(LineRejection(domain, line_number, f"Invalid domain format: {domain}"))
        return result


def is_valid_domain_format(domain: str) -> bool:
    """Basic domain format check used for the add-domains form."""
    return 3 <= len(domain) <= 253 and bool(_DOMAIN_RE.match(domain))


def resolve_apex(content: str, zone: str) -> str:
    """Replace the ``@`` content marker with the zone apex."""
    return zone if content == APEX_MARKER else content
