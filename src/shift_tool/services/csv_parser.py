"""Lenient line-oriented CSV tokenizer for uploaded schedule files"""
import re
from typing import List, NamedTuple


LINE_BREAK = re.compile(r"\r?\n")


class ParsedCSV(NamedTuple):
    headers: List[str]
    rows: List[List[str]]


def split_csv_line(line: str) -> List[str]:
    """Split one line on commas outside double quotes.

    A doubled quote inside a quoted span is a literal quote. An unterminated
    quote simply runs to the end of the line.
    """
    fields = []
    current = []
    in_quotes = False
    i = 0
    while i < len(line):
        char = line[i]
        if char == '"':
            if in_quotes and line[i + 1:i + 2] == '"':
                current.append('"')
                i += 1
            else:
                in_quotes = not in_quotes
        elif char == "," and not in_quotes:
            fields.append("".join(current).strip())
            current = []
        else:
            current.append(char)
        i += 1
    fields.append("".join(current).strip())
    return fields


def parse_csv(text: str) -> ParsedCSV:
    lines = [line for line in LINE_BREAK.split(text) if line.strip()]
    if not lines:
        return ParsedCSV(headers=[], rows=[])

    headers = split_csv_line(lines[0])
    rows = [split_csv_line(line) for line in lines[1:]]
    return ParsedCSV(headers=headers, rows=rows)
