import io

import pytest

from diagnostics import reduction_error
from witness_reducer import witness_reducer


def reducer_for(interpreter):
    return witness_reducer(interpreter.model, interpreter.config, io.StringIO())


def labels(model):
    return [model.hand_label(par, t, hd.index) for par, t, hd in model.active_hands()]


class TestConstantVariants:
    def test_constant_units_are_excluded(self, interpret):
        interpreter = interpret("* A B C ;\n[ w | a | b ]\n< 00 A B | 01 C >")
        reducer = reducer_for(interpreter)
        eliminated = reducer.suppress_constant()
        assert [u.index for u in eliminated] == [0]
        assert [u.weight for u in interpreter.model.units] == [0, 1]
        assert interpreter.model.weighted_total == 1

    def test_missing_states_do_not_count(self, interpret):
        interpreter = interpret("* A B ;\n[ w | ]\n< 0 A | ? B >")
        reducer_for(interpreter).suppress_constant()
        assert interpreter.model.weighted_total == 0

    def test_singular_variants(self, interpret):
        text = "* A B C D ;\n[ w | | ]\n< 00 A B | 11 C | 10 D >"
        interpreter = interpret(text, max_hands=1)
        reducer_for(interpreter).suppress_constant()
        assert [u.weight for u in interpreter.model.units] == [1, 1]
        interpreter = interpret(text, max_hands=1, no_singular=True)
        reducer_for(interpreter).suppress_constant()
        assert [u.weight for u in interpreter.model.units] == [1, 0]


class TestFragmentsAndCorrectors:
    def test_thresholds(self, interpret):
        interpreter = interpret("* A B ;\n[ w |*25 ]\n< 0 A | 1 B >")
        assert reducer_for(interpreter).thresholds() == (13, 3)
        interpreter = interpret("* A B ;\n[ w |*25 ]\n< 0 A | 1 B >", fthresh=7, cthresh=9)
        assert reducer_for(interpreter).thresholds() == (7, 9)

    def test_exact_half_is_below_the_fragment_threshold(self, interpret):
        interpreter = interpret("* A B ;\n[ w |*10 ]\n< 0 A | 1 B >")
        assert reducer_for(interpreter).thresholds() == (6, 2)

    def test_large_collation_correction_threshold(self, interpret):
        text = "* A B ;\n" + "[ w | ]\n< 0 A | 1 B >\n" * 201
        reducer = reducer_for(interpret(text))
        assert reducer.thresholds() == (101, 100)

    def test_fragmentary_witness(self, interpret):
        text = "* A B C ;\n[ p |*6 ]\n< a A | b B | a C >\n= $? C ;\n[ q |*6 ]\n< a A | b B >"
        interpreter = interpret(text, fthresh=10)
        assert interpreter.n_warnings == 0
        reducer = reducer_for(interpreter)
        reducer.reduce()
        assert reducer.reports[0] == "Thresholds: frag=10, corr=2; adjustments: -C(6)"
        assert labels(interpreter.model) == ["A", "B"]
        assert interpreter.model.parallels[0].testimonies[2].suppressed()

    def test_unchanged_correctors_are_suppressed(self, interpret):
        interpreter = interpret("* A B C ;\n[ w |*5 ]\n< a A | a B | b C >")
        reducer = reducer_for(interpreter)
        reducer.reduce()
        model = interpreter.model
        assert labels(model) == ["A", "B", "C"]
        assert model.weighted_total == 5
        assert not any(t.corrected for t in model.parallels[0].testimonies)

    def test_surviving_corrector(self, interpret):
        interpreter = interpret("* A B C ;\n[ w | | | ]\n< 000 A | 000 B | 111 C | 110 A:1 >")
        reducer = reducer_for(interpreter)
        reducer.reduce()
        model = interpreter.model
        a = model.parallels[0].testimonies[0]
        assert reducer.reports[0] == "Thresholds: frag=2, corr=1; adjustments: +A:1(2)"
        assert a.corrected
        assert a.hands[1].last_hand == 0
        assert labels(model) == ["A:0", "A:1", "B", "C"]
        states, _ = model.state_row(model.parallels[0], a, 1)
        assert "".join(states) == "110"

    def test_inherited_cells_are_shared(self, interpret):
        interpreter = interpret("* A B ;\n[ w | ]\n< 0 A | 1 B >\n[ v | | ]\n< 00 A | 11 B | 10 A:1 >")
        reducer_for(interpreter).reduce()
        a = interpreter.model.parallels[0].testimonies[0]
        assert not a.hands[1].suppressed
        assert a.hands[1].cells[0] is a.hands[0].cells[0]

    def test_mandated_witness_is_not_fragmentary(self, interpret):
        interpreter = interpret("* A B C ;\n[ w | | ]\n< 01 A | 10 B | 1? C >", fthresh=100)
        reducer = reducer_for(interpreter)
        reducer.reduce(["A", "B"])
        assert labels(interpreter.model) == ["A", "B"]

    def test_mandated_corrector_survives_low_change(self, interpret):
        interpreter = interpret("* A B C ;\n[ w | | | ]\n< 000 A | 000 B | 111 C | 001 A:1 >", cthresh=5)
        reducer = reducer_for(interpreter)
        reducer.reduce(["A:1", "B", "C"])
        assert reducer.reports[0] == "Thresholds: frag=2, corr=5; adjustments: +A:1(1)"
        assert labels(interpreter.model) == ["A:0", "A:1", "B", "C"]


class TestIdenticalWitnesses:
    text = "* A B C ;\n[ w | ]\n< 0 A B | 1 C >\n[ v | ]\n< 0 $* | 1 C >"

    def test_shared_reading_sets(self, interpret):
        interpreter = interpret(self.text)
        reducer = reducer_for(interpreter)
        reducer.reduce()
        assert reducer.reports[-1] == "Checking identical witnesses: -B=A Done"
        assert labels(interpreter.model) == ["A", "C"]

    def test_equal_text_is_not_identity(self, interpret):
        interpreter = interpret("* A B C ;\n[ w | ]\n< 0 A | 0 B | 1 C >\n[ v | ]\n< 0 A | 0 B | 1 C >")
        reducer = reducer_for(interpreter)
        reducer.reduce()
        assert reducer.reports[-1] == "Checking identical witnesses: Done"
        assert labels(interpreter.model) == ["A", "B", "C"]

    def test_identical_witnesses_allowed(self, interpret):
        interpreter = interpret(self.text, id_ok=True)
        reducer = reducer_for(interpreter)
        reducer.reduce()
        assert labels(interpreter.model) == ["A", "B", "C"]
        assert not any(r.startswith("Checking identical") for r in reducer.reports)

    def test_identical_first(self, interpret):
        interpreter = interpret(self.text, id_first=True)
        reducer = reducer_for(interpreter)
        reducer.reduce()
        assert reducer.reports[-1] == "Checking identical witnesses: -B=A Done"
        assert labels(interpreter.model) == ["A", "C"]

    def test_mandated_witness_is_not_merged(self, interpret):
        interpreter = interpret(self.text)
        reducer = reducer_for(interpreter)
        reducer.reduce(["A", "B", "C"])
        assert reducer.reports[-1] == "Checking identical witnesses: Done"
        assert labels(interpreter.model) == ["A", "B", "C"]


class TestMandates:
    text = "* A B C ;\n= $m A B ;\n[ w | | ]\n< 01 A | 10 B | 11 C >"

    def test_unlisted_witnesses_are_suppressed(self, interpret):
        interpreter = interpret(self.text)
        reducer_for(interpreter).mandate(["A", "C"])
        t = interpreter.model.parallels[0].testimonies
        assert [x.suppressed() for x in t] == [False, True, False]
        assert t[0].hands[0].mandated
        assert [hd.suppressed for hd in t[0].hands] == [False, True, True, True]

    def test_macro_mandate(self, interpret):
        interpreter = interpret(self.text)
        reducer_for(interpreter).mandate(["$m"])
        t = interpreter.model.parallels[0].testimonies
        assert [x.suppressed() for x in t] == [False, False, True]

    def test_corrector_mandate_includes_original_hand(self, interpret):
        interpreter = interpret(self.text)
        reducer_for(interpreter).mandate(["A:1"])
        hands = interpreter.model.parallels[0].testimonies[0].hands
        assert hands[0].mandated and hands[1].mandated
        assert [hd.suppressed for hd in hands] == [False, False, True, True]

    @pytest.mark.parametrize("name, problem", [("Z", "Unknown: Z"), ("A/x", "Unknown parallel: A/x"), ("$q", "Unknown macro: $q")])
    def test_bad_mandate_suppresses_nothing(self, interpret, name, problem):
        interpreter = interpret(self.text)
        reducer = reducer_for(interpreter)
        with pytest.raises(reduction_error) as excinfo:
            reducer.reduce(["A", name])
        assert excinfo.value.problems == [problem]
        assert reducer.reports == ["+     " + problem]
        assert interpreter.model.n_active() == 12

    def test_suppressed_mandate(self, interpret):
        interpreter = interpret(self.text + "\n- B ;")
        with pytest.raises(reduction_error) as excinfo:
            reducer_for(interpreter).mandate(["B"])
        assert excinfo.value.problems == ["Already suppressed: B"]


class TestYearCutoff:
    def test_late_hands_are_suppressed_and_relinked(self, interpret, tmp_path):
        (tmp_path / "chron.txt").write_text("A 100 150 200\nA:1 900 950 1000\nA:2 300 350 400\nB 600 650 700\n", encoding="utf-8")
        text = "* A B C D ;\n^ %s\n[ w | | | ]\n< 000 A | 000 B | 111 C | 101 D | 110 A:1 | 011 A:2 >" % (tmp_path / "chron.txt")
        interpreter = interpret(text, year=500)
        reducer = reducer_for(interpreter)
        reducer.reduce()
        model = interpreter.model
        a = model.parallels[0].testimonies[0]
        assert "Year suppression at 500: -A:1(900) -B(600)" in reducer.reports
        assert labels(model) == ["A:0", "A:2", "C", "D"]
        assert a.hands[2].last_hand == 0
        assert a.corrected

    def test_every_surviving_hand_links_to_a_surviving_hand(self, interpret):
        interpreter = interpret("* A B C ;\n[ w | | | ]\n< 000 A | 000 B | 111 C | 110 A:1 | 011 A:3 >")
        reducer_for(interpreter).reduce()
        for par, t, hd in interpreter.model.active_hands():
            if hd.index > 0:
                assert hd.last_hand < hd.index
                assert not t.hands[hd.last_hand].suppressed

    def test_mandated_hand_survives_the_cutoff(self, interpret, tmp_path):
        (tmp_path / "chron.txt").write_text("B 600 650 700\n", encoding="utf-8")
        interpreter = interpret("* A B C ;\n^ %s\n[ w | | ]\n< 01 A | 10 B | 11 C >" % (tmp_path / "chron.txt"), year=500)
        reducer = reducer_for(interpreter)
        reducer.reduce(["A", "B", "C"])
        assert "Year suppression at 500:" in reducer.reports
        assert labels(interpreter.model) == ["A", "B", "C"]
