#!/usr/bin/env python3

import re # for splitting lines into whitespace-delimited tokens
from collections import namedtuple

"""
A whitespace-delimited token of the collation notation, with the (1-based) line it was read from.
"""
token = namedtuple("token", ["text", "line"])

token_pattern = re.compile(r"\S+")

"""
Restartable tokenizer for the collation notation.
Every iteration starts a new scan from the beginning of the source text.
"""
class collation_lexer():
    def __init__(self, text, source_addr=None):
        self.text = text # full source text of the collation
        self.source_addr = source_addr # file the text was read from, if any (reported in progress output)

    """
    Reads the collation text at the given file address into a new lexer.
    """
    @classmethod
    def from_file(cls, input_addr, encoding="utf-8"):
        with open(input_addr, "r", encoding=encoding) as f:
            text = f.read()
        return cls(text, input_addr)

    def __iter__(self):
        return self.tokens()

    """
    Generates the tokens of the source, one line at a time.
    """
    def tokens(self):
        for lineno, line in enumerate(self.text.splitlines(), start=1):
            for match in token_pattern.finditer(line):
                yield token(match.group(), lineno)
        return
