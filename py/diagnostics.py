#!/usr/bin/env python3

import sys

"""
Severities of a diagnostic
"""
warning = "warning" # reported; processing continues, but the run will not produce output unless tolerated
fatal = "fatal" # reported; processing stops immediately

"""
A single problem found while interpreting a collation.
It carries enough context (current line, the line on which the enclosing command began, the command symbol,
the current position marker and lemma) to find the problem in the source without re-parsing it.
"""
class diagnostic():
    def __init__(self, line, start_line, symbol, message, arg="", position="", lemma="", severity=warning):
        self.line = line # line on which the problem was detected
        self.start_line = start_line # line on which the enclosing command began
        self.symbol = symbol # symbol of the enclosing command (e.g., "<" or "=")
        self.message = message
        self.arg = arg # offending token or other detail
        self.position = position # current position (verse) marker
        self.lemma = lemma # lemma of the current reading block
        self.severity = severity

    """
    Renders the diagnostic in fixed columns: line, command, message, position, lemma.
    """
    def __str__(self):
        text = "%4d: %s" % (self.line, self.symbol)
        text += " " * max(1, 6 - len(text))
        text += self.message
        if self.arg:
            text += " " + self.arg
        text += " " * max(1, 31 - len(text))
        text += "@ " + self.position
        if self.lemma:
            text += " " * max(1, 50 - len(text))
            text += "[ %s ]" % self.lemma
        if self.start_line != self.line:
            text += " (command began on line %d)" % self.start_line
        return text

    def __repr__(self):
        return "diagnostic(%s, %r)" % (self.severity, str(self))

"""
Raised when a fatal problem stops the interpretation of a collation.
"""
class collation_error(Exception):
    def __init__(self, diag):
        super().__init__(str(diag))
        self.diagnostic = diag

"""
Raised when the reduction pipeline cannot be configured (e.g., an unresolvable witness name on the command line).
No hand is suppressed when this is raised.
"""
class reduction_error(Exception):
    def __init__(self, problems):
        super().__init__("; ".join(problems))
        self.problems = problems

"""
Writes a line to the diagnostic stream (standard error unless another stream is given).
"""
def report(text, stream=None, end="\n"):
    stream = sys.stderr if stream is None else stream
    stream.write(text + end)
    return
