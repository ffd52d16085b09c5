#!/usr/bin/env python3

import time # to time calculations for users
import re # for deriving XML identifiers from witness labels
import json # for writing output to JSON
import numpy as np # for repeating states by weight
import pandas as pd # for writing output to Excel and JSON
from lxml import etree as et # for writing TEI XML apparatus output
from common import *

"""
Writes the reduced testimony model to the state matrix (.tx), constraints (.no) and variant listing (.vr) files,
and optionally to Excel, JSON or TEI XML.
"""
class collation_writer():
    """
    Constructs a new collation_writer.
    The lexer is rescanned to regenerate the variant listing; the stratifier supplies strata and predecessors.
    """
    def __init__(self, model, lexer, stratifier, verbose=False):
        self.model = model
        self.lexer = lexer
        self.stratifier = stratifier
        self.verbose = verbose # flag indicating whether or not to print timing and debugging details for the user
        self.constraints = None # cached (parallel, testimony, hand, predecessors) entries
        self.next_unit = 0 # index of the next variation unit met while rescanning the source
        self.next_column = 0 # number of weighted matrix columns covered so far while rescanning

    def get_constraints(self):
        if self.constraints is None:
            self.stratifier.stratify()
            self.constraints = self.stratifier.constraints()
        return self.constraints

    """
    Returns (label, states) for every surviving hand, each state repeated as many times as its unit's weight.
    """
    def matrix_rows(self):
        weights = self.model.weights()
        rows = []
        for par, t, hd in self.model.active_hands():
            states, _ = self.model.state_row(par, t, hd.index)
            rows.append((self.model.hand_label(par, t, hd.index), "".join(np.repeat(states, weights))))
        return rows

    def write_matrix(self, f):
        rows = self.matrix_rows()
        f.write("%-9d %d\n" % (len(rows), self.model.weighted_total))
        for label, states in rows:
            f.write("%-9s %s\n" % (label, states))
        return

    def write_constraints(self, f):
        for par, t, hd, preceding in self.get_constraints():
            f.write("%-9s %d < " % (self.model.hand_label(par, t, hd.index), hd.stratum))
            for par2, t2, hd2 in preceding:
                f.write("%s " % self.model.hand_label(par2, t2, hd2.index))
            f.write(">\n")
        return

    """
    Rescans the collation source and writes each position marker and reading block with,
    for every variation unit, its running weighted index (or "----" if it was excluded) and its numbered alternatives.
    """
    def write_variants(self, f):
        tokens = iter(self.lexer)
        self.next_unit = 0
        self.next_column = 0
        for tok in tokens:
            text = tok.text
            if text.startswith("!"):
                break
            symbol = text[0]
            if symbol == "@":
                marker = next(tokens, None)
                f.write("\n@ %s\n" % ("" if marker is None else marker.text))
            elif symbol in "*=-+()#":
                skip_until(tokens, ";")
            elif symbol == "<":
                skip_until(tokens, ">")
            elif symbol == '"':
                if not (len(text) > 1 and text.endswith('"')):
                    skip_until(tokens, '"')
            elif symbol == "~":
                for _ in range(3):
                    next(tokens, None)
            elif symbol == "^":
                next(tokens, None)
            elif symbol == "[":
                self.write_readings(f, tokens)
        return

    # Syntax: [ {lemma}* { | {*n|score} {alternative}* }+ ]
    def write_readings(self, f, tokens):
        lemma = True
        space = False
        rdg = 0
        for tok in tokens:
            text = tok.text
            if text.startswith("]"):
                f.write("\n")
                return
            if text.startswith('"'):
                if not (len(text) > 1 and text.endswith('"')):
                    skip_until(tokens, '"')
                continue
            if text.startswith("|"):
                unit = self.model.units[self.next_unit]
                self.next_unit += 1
                self.next_column += unit.weight
                rdg = 0
                if unit.weight > 0:
                    f.write("\n%4d  " % (self.next_column - 1))
                else:
                    f.write("\n----  ")
                lemma = False
                space = False
                continue
            if lemma and not space:
                f.write("\n>     ")
            if space:
                f.write(" ")
            if not lemma:
                rdg += 1
                f.write("%d=" % rdg)
            space = True
            f.write(text)
        return

    """
    Writes the three output files next to the given base address (base.tx, base.no, base.vr).
    Returns the list of file addresses written.
    """
    def write_all(self, base_addr):
        if self.verbose:
            print("Writing matrix, constraints and variant listing for %s..." % base_addr)
        t0 = time.time()
        output_addrs = []
        for ext, write in [("tx", self.write_matrix), ("no", self.write_constraints), ("vr", self.write_variants)]:
            output_addr = "%s.%s" % (base_addr, ext)
            with open(output_addr, "w", encoding="utf-8") as f:
                write(f)
            output_addrs.append(output_addr)
        t1 = time.time()
        if self.verbose:
            print("Done in %0.4fs." % (t1 - t0))
        return output_addrs

    """
    Returns a label for each variation unit that survived the reduction.
    """
    def unit_labels(self):
        labels = []
        for unit in self.model.units:
            if unit.weight == 0:
                continue
            pc = self.model.pieces[unit.piece_index]
            labels.append((unit, "%d %s %s" % (unit.index, pc.position, pc.lemma)))
        return labels

    """
    Converts the reduced collation to Pandas DataFrames keyed by table name:
    the (unweighted) state matrix, the unit weights, and the chronological constraints.
    """
    def to_dataframes(self):
        labels = self.unit_labels()
        rows = []
        index = []
        for par, t, hd in self.model.active_hands():
            states, _ = self.model.state_row(par, t, hd.index)
            index.append(self.model.hand_label(par, t, hd.index))
            rows.append([states[unit.index] for unit, _ in labels])
        matrix_df = pd.DataFrame(data=rows, index=index, columns=[label for _, label in labels])
        weights_df = pd.DataFrame(data=[{"unit": label, "weight": unit.weight} for unit, label in labels], columns=["unit", "weight"])
        constraint_rows = []
        for par, t, hd, preceding in self.get_constraints():
            constraint_rows.append({
                "witness": self.model.hand_label(par, t, hd.index),
                "stratum": hd.stratum,
                "earliest": hd.earliest,
                "average": hd.average,
                "latest": hd.latest if hd.has_chronology() else None,
                "predecessors": " ".join(self.model.hand_label(par2, t2, hd2.index) for par2, t2, hd2 in preceding),
            })
        constraints_df = pd.DataFrame(data=constraint_rows, columns=["witness", "stratum", "earliest", "average", "latest", "predecessors"])
        summary_df = pd.DataFrame(data=[{"active witnesses": len(index), "weighted variants": self.model.weighted_total, "variation units": len(self.model.units), "pieces": len(self.model.pieces)}])
        return {"Summary": summary_df, "Matrix": matrix_df, "Weights": weights_df, "Constraints": constraints_df}

    """
    Writes the reduced collation to separate sheets of the specified Excel file.
    """
    def to_excel(self, output_addr):
        if self.verbose:
            print("Writing reduced collation to Excel...")
        t0 = time.time()
        dfs = self.to_dataframes()
        with pd.ExcelWriter(output_addr) as writer:
            dfs["Summary"].to_excel(writer, sheet_name="Summary", index=False)
            dfs["Matrix"].to_excel(writer, sheet_name="Matrix")
            dfs["Weights"].to_excel(writer, sheet_name="Weights", index=False)
            dfs["Constraints"].to_excel(writer, sheet_name="Constraints", index=False)
        t1 = time.time()
        if self.verbose:
            print("Done in %0.4fs." % (t1 - t0))
        return

    """
    Serializes the reduced collation to a JSON string mapping each table's name to its records.
    """
    def to_json(self):
        if self.verbose:
            print("Writing reduced collation to JSON...")
        t0 = time.time()
        dfs = self.to_dataframes()
        matrix_df = dfs["Matrix"].reset_index().rename(columns={"index": "witness"})
        json_output = json.dumps({
            "Summary": json.loads(dfs["Summary"].to_json(orient="records")),
            "Matrix": json.loads(matrix_df.to_json(orient="records")),
            "Weights": json.loads(dfs["Weights"].to_json(orient="records")),
            "Constraints": json.loads(dfs["Constraints"].to_json(orient="records")),
        })
        t1 = time.time()
        if self.verbose:
            print("Done in %0.4fs." % (t1 - t0))
        return json_output

    """
    Builds a TEI XML apparatus of the variation units:
    one <app/> per unit with its lemma, its entered alternatives, and the surviving hands grouped by state.
    """
    def to_tei_tree(self):
        tei = et.Element("{%s}TEI" % tei_ns, nsmap={None: tei_ns})
        text = et.SubElement(tei, "{%s}text" % tei_ns)
        body = et.SubElement(text, "{%s}body" % tei_ns)
        list_wit = et.SubElement(body, "{%s}listWit" % tei_ns)
        hands = []
        for par, t, hd in self.model.active_hands():
            label = self.model.hand_label(par, t, hd.index)
            wit = et.SubElement(list_wit, "{%s}witness" % tei_ns)
            wit.set("{%s}id" % xml_ns, xml_id(label))
            wit.set("n", label)
            wit.text = t.witness.display_name
            states, _ = self.model.state_row(par, t, hd.index)
            hands.append((xml_id(label), states))
        for pc in self.model.pieces:
            for unit in pc.units:
                app = et.SubElement(body, "{%s}app" % tei_ns)
                app.set("n", str(unit.index))
                app.set("loc", pc.position)
                app.set("type", "weight-%d" % unit.weight)
                lem = et.SubElement(app, "{%s}lem" % tei_ns)
                lem.text = pc.lemma
                alternatives = et.SubElement(app, "{%s}rdgGrp" % tei_ns)
                alternatives.set("type", "alternatives")
                for k, reading in enumerate(unit.readings, start=1):
                    rdg = et.SubElement(alternatives, "{%s}rdg" % tei_ns)
                    rdg.set("n", str(k))
                    rdg.text = reading
                support = et.SubElement(app, "{%s}rdgGrp" % tei_ns)
                support.set("type", "states")
                by_state = {}
                for wit_id, states in hands:
                    state = states[unit.index]
                    if state == missing_state:
                        continue
                    by_state.setdefault(state, []).append("#" + wit_id)
                for state in sorted(by_state):
                    rdg = et.SubElement(support, "{%s}rdg" % tei_ns)
                    rdg.set("n", state)
                    rdg.set("wit", " ".join(by_state[state]))
        return et.ElementTree(tei)

    def to_tei(self, output_addr):
        if self.verbose:
            print("Writing variation units to TEI XML...")
        t0 = time.time()
        self.to_tei_tree().write(output_addr, encoding="utf-8", xml_declaration=True, pretty_print=True)
        t1 = time.time()
        if self.verbose:
            print("Done in %0.4fs." % (t1 - t0))
        return

"""
Consumes tokens up to and including the first one that begins with the terminator.
"""
def skip_until(tokens, terminator):
    for tok in tokens:
        if tok.text.startswith(terminator):
            return

"""
Returns a valid XML identifier for a witness label (e.g., "P46:1/a" becomes "P46_1_a").
"""
def xml_id(label):
    ident = re.sub(r"[^\w.-]", "_", label)
    if not re.match(r"[A-Za-z_]", ident):
        ident = "w" + ident
    return ident
