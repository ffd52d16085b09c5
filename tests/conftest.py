import io

import pytest

from prep_config import prep_config
from collation_lexer import collation_lexer
from collation_interpreter import collation_interpreter


@pytest.fixture
def interpret():
    """Interprets a collation text with the given settings; returns the interpreter."""
    def run(text, **settings):
        interpreter = collation_interpreter(prep_config(**settings), io.StringIO())
        interpreter.interpret(collation_lexer(text))
        return interpreter
    return run


@pytest.fixture
def collation_file(tmp_path):
    """Writes a collation text to a file under tmp_path; returns its path as a string."""
    def write(text, name="sample.mss"):
        path = tmp_path / name
        path.write_text(text, encoding="utf-8")
        return str(path)
    return write
