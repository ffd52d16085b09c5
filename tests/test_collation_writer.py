import io
import json

import pytest
from lxml import etree as et

from common import tei_ns, xml_ns
from collation_lexer import collation_lexer
from witness_reducer import witness_reducer
from stratifier import stratifier
from collation_writer import collation_writer, xml_id


COLLATION = """* A B C ;
@ Mt1.1
[ in the beginning | en |*0 arche |3 x y ]
< 001 A | 110 B | 101 C >
" a comment with [ brackets ] "
@ Mt1.2
[ | a |*2 b ]
< 01 A | 10 B C >
"""


@pytest.fixture
def writer(interpret):
    """Interprets and reduces the sample collation; returns a writer for it."""
    def run(text=COLLATION, reduce=True, **settings):
        interpreter = interpret(text, **settings)
        model = interpreter.model
        if reduce:
            witness_reducer(model, interpreter.config, io.StringIO()).reduce()
        strat = stratifier(model, interpreter.config, io.StringIO())
        return collation_writer(model, collation_lexer(text), strat)
    return run


def written(write):
    f = io.StringIO()
    write(f)
    return f.getvalue()


class TestMatrix:
    def test_weighted_matrix(self, writer):
        w = writer()
        lines = written(w.write_matrix).splitlines()
        assert lines[0] == "3         5"
        assert lines[1:] == ["A         01011", "B         10100", "C         11100"]

    def test_header_matches_row_length(self, writer):
        w = writer(reduce=False)
        lines = written(w.write_matrix).splitlines()
        n_rows, total = [int(x) for x in lines[0].split()]
        assert n_rows == len(lines) - 1
        for line in lines[1:]:
            assert len(line[10:]) == total


class TestConstraints:
    def test_undated_hands_precede_only_themselves(self, writer):
        w = writer()
        assert written(w.write_constraints) == "A         0 < A >\nB         0 < B >\nC         0 < C >\n"


class TestVariantListing:
    def test_listing(self, writer):
        w = writer(reduce=False)
        assert written(w.write_variants) == (
            "\n@ Mt1.1\n"
            "\n>     in the beginning"
            "\n   0  1=en"
            "\n----  1=arche"
            "\n   1  1=x 2=y"
            "\n"
            "\n@ Mt1.2\n"
            "\n   2  1=a"
            "\n   4  1=b"
            "\n"
        )

    def test_eliminated_units_are_dashed(self, writer):
        text = "* A B C ;\n[ w | a | b ]\n< 00 A B | 01 C >"
        w = writer(text)
        assert written(w.write_variants) == "\n>     w\n----  1=a\n   0  1=b\n"

    def test_listing_stops_at_end(self, writer):
        text = "* A B ;\n[ w | a ]\n< 0 A | 1 B >\n!\n[ v | b ]"
        w = writer(text, reduce=False)
        assert written(w.write_variants) == "\n>     w\n   0  1=a\n"


class TestFiles:
    def test_write_all(self, writer, tmp_path):
        w = writer()
        base = str(tmp_path / "sample.mss")
        addrs = w.write_all(base)
        assert addrs == [base + ".tx", base + ".no", base + ".vr"]
        with open(base + ".tx", encoding="utf-8") as f:
            assert f.readline() == "3         5\n"


class TestExports:
    def test_dataframes(self, writer):
        dfs = writer().to_dataframes()
        assert list(dfs["Matrix"].index) == ["A", "B", "C"]
        assert dfs["Weights"]["weight"].sum() == 5
        assert list(dfs["Constraints"]["witness"]) == ["A", "B", "C"]

    def test_json(self, writer):
        output = json.loads(writer().to_json())
        assert set(output) == {"Summary", "Matrix", "Weights", "Constraints"}
        assert [row["witness"] for row in output["Matrix"]] == ["A", "B", "C"]
        assert output["Summary"][0]["weighted variants"] == 5

    def test_tei(self, writer):
        tree = writer().to_tei_tree()
        ns = {"tei": tei_ns}
        witnesses = tree.findall(".//tei:listWit/tei:witness", ns)
        assert [wit.get("{%s}id" % xml_ns) for wit in witnesses] == ["A", "B", "C"]
        apps = tree.findall(".//tei:app", ns)
        assert len(apps) == 5
        assert apps[0].find("tei:lem", ns).text == "in the beginning"
        states = apps[0].findall("tei:rdgGrp[@type='states']/tei:rdg", ns)
        assert [(rdg.get("n"), rdg.get("wit")) for rdg in states] == [("0", "#A"), ("1", "#B #C")]

    def test_tei_file(self, writer, tmp_path):
        path = tmp_path / "apparatus.xml"
        writer().to_tei(str(path))
        assert et.parse(str(path)).getroot().tag == "{%s}TEI" % tei_ns

    def test_xml_id(self):
        assert xml_id("P46:1/a") == "P46_1_a"
        assert xml_id("01") == "w01"
