#!/usr/bin/env python3

import time # to time calculations for users
import math # for the open-ended latest date propagated by chronology entries
from enum import Enum
import pandas as pd # for reading chronology tables
from common import *
from diagnostics import diagnostic, collation_error, report, warning, fatal
from macro_registry import priority
from testimony_model import testimony_model, member_unknown, member_suppressed, member_bad_hand, member_skipped

"""
Commands of the collation notation, keyed by the first character of the token that introduces them.
"""
class command(Enum):
    DECLARE = "*" # * name[~alt[~display]]... [/c ...] ;
    PARALLEL = "/" # /c
    DEFINE = "=" # = $m members... ;   (=+ adds, =- subtracts, =? checks)
    LACUNA_OPEN = "(" # ( members... ;
    LACUNA_CLOSE = ")" # ) members... ;
    LACUNA_CHECK = "#" # # members... ;
    POSITION = "@" # @ marker
    READINGS = "[" # [ lemma... | alternatives... |*n alternatives... ]
    WITNESSES = "<" # < states members... | states members... >
    CHRONOLOGY = "^" # ^ file
    ALIAS = "~" # ~ name alt display
    SUPPRESS = "-" # - members... ;
    COMMENT = '"' # " words... "
    DISCARD = "+" # + tokens... ;
    SECTION_BEGIN = "{"
    SECTION_END = "}"
    END = "!"

    """
    Returns the command introduced by the given token, or None if its first character selects no command.
    """
    @classmethod
    def of(cls, text):
        try:
            return cls(text[:1])
        except ValueError:
            return None

"""
Reads a chronology file of lines "witness minDate midDate maxDate".
Returns a list of (witness, min, mid, max) entries and a list of the (1-based) line numbers of malformed lines.
Blank lines are ignored; witness names are taken literally (e.g., "NA" is a siglum, not a missing value).
Raises OSError if the file cannot be read.
"""
def read_chronology(path):
    with open(path, "r", encoding="utf-8") as f:
        lines = pd.Series(f.read().splitlines(), dtype=object)
    fields = lines.str.split()
    n_fields = fields.str.len()
    entries = []
    bad_rows = []
    for i in lines.index:
        if n_fields[i] == 0:
            continue
        if n_fields[i] != 4:
            bad_rows.append(i + 1)
            continue
        name, min_date, mid_date, max_date = fields[i]
        try:
            entries.append((name, int(min_date), int(mid_date), int(max_date)))
        except ValueError:
            bad_rows.append(i + 1)
    return entries, bad_rows

"""
Interpreter for the collation notation.
It reads the commands of a collation one token at a time and builds the testimony model they describe.
"""
class collation_interpreter():
    """
    Constructs a new collation_interpreter with the given settings (a prep_config).
    """
    def __init__(self, config, stream=None):
        self.config = config
        self.stream = stream # diagnostic stream (standard error if None)
        self.model = testimony_model(config.root, config.root_state, config.max_hands)
        self.diagnostics = [] # every warning and fatal diagnostic, in order
        self.n_warnings = 0
        self.tokens = None # iterator over the tokens of the current scan
        self.line = 0 # line of the most recent token
        self.start_line = 0 # line on which the current command began
        self.symbol = "" # symbol of the current command
        self.parallel = None # active parallel
        self.preamble_position = default_position # position marker set before the witnesses are declared
        self.lemma = "" # lemma of the current reading block
        self.piece = None # piece of the current reading block
        self.handlers = {
            command.DECLARE: self.do_declare,
            command.PARALLEL: self.do_parallel,
            command.DEFINE: self.do_define,
            command.LACUNA_OPEN: self.do_lacuna,
            command.LACUNA_CLOSE: self.do_lacuna,
            command.LACUNA_CHECK: self.do_lacuna,
            command.POSITION: self.do_position,
            command.READINGS: self.do_readings,
            command.WITNESSES: self.do_witnesses,
            command.CHRONOLOGY: self.do_chronology,
            command.ALIAS: self.do_alias,
            command.SUPPRESS: self.do_suppress,
            command.COMMENT: self.do_comment,
            command.DISCARD: self.do_discard,
            command.SECTION_BEGIN: self.do_section,
            command.SECTION_END: self.do_section,
        }

    """
    Interprets every command of the given lexer's source, populating the testimony model.
    Returns the number of warnings; raises collation_error on a fatal problem.
    """
    def interpret(self, lexer):
        if self.config.verbose:
            print("Interpreting collation commands from %s..." % (lexer.source_addr or "text"))
        t0 = time.time()
        self.tokens = iter(lexer)
        for tok in self.tokens:
            self.line = tok.line
            self.start_line = tok.line
            self.symbol = tok.text[0]
            cmd = command.of(tok.text)
            if cmd is None:
                self.symbol = "?"
                self.warn("Unknown token:", tok.text)
                continue
            if cmd is command.END:
                break
            self.handlers[cmd](tok)
        t1 = time.time()
        if self.config.verbose:
            print("Done in %0.4fs." % (t1 - t0))
        return self.n_warnings

    @property
    def position(self):
        return self.preamble_position if self.parallel is None else self.parallel.position

    def warn(self, message, arg=""):
        diag = diagnostic(self.line, self.start_line, self.symbol, message, arg, self.position, self.lemma, warning)
        self.diagnostics.append(diag)
        self.n_warnings += 1
        report(str(diag), self.stream)
        return

    def fatal(self, message, arg=""):
        diag = diagnostic(self.line, self.start_line, self.symbol, message, arg, self.position, self.lemma, fatal)
        self.diagnostics.append(diag)
        report(str(diag), self.stream)
        raise collation_error(diag)

    """
    Returns the next token of the source; the end of the input inside a command is fatal.
    """
    def next_token(self):
        tok = next(self.tokens, None)
        if tok is None:
            self.fatal("Unexpected end of file")
        self.line = tok.line
        return tok

    def require_declared(self):
        if not self.model.declared():
            self.fatal("Witnesses have not been declared")
        return

    """
    Skips the rest of a comment whose opening token has just been read.
    """
    def skip_comment(self, opening):
        if len(opening) > 1 and opening.endswith('"'):
            return
        while not self.next_token().text.startswith('"'):
            pass
        return

    """
    Reports a member that could not be resolved.
    A token containing the list terminator leaves no safe place to resume, so it is fatal.
    """
    def unknown_member(self, text, terminator):
        if terminator in text:
            self.fatal("Unknown:", text)
        self.warn("Unknown:", text)
        return

    """
    Yields (text, macro, member) for each item of a member list up to its terminator,
    where exactly one of macro and member is set. Unknown macros are reported and skipped.
    """
    def member_list(self, terminator=";"):
        while True:
            text = self.next_token().text
            if text.startswith(terminator):
                return
            if text.startswith('"'):
                self.skip_comment(text)
                continue
            if text.startswith("$"):
                m = self.parallel.macros.resolve(text[1:2])
                if m is None:
                    self.warn("Unknown macro:", text)
                    continue
                yield text, m, None
            else:
                yield text, None, self.model.resolve_member(self.parallel, text)

    # Syntax: * {name[~alt[~display]]}+ {/c}* ;
    def do_declare(self, tok):
        if self.model.declared():
            self.fatal("Already declared the witnesses.")
        declarations = []
        codes = []
        names = set()
        while True:
            text = self.next_token().text
            if text.startswith(";"):
                break
            if text.startswith('"'):
                self.skip_comment(text)
            elif text.startswith(parallel_separator):
                code = text[1:2]
                if code in codes:
                    self.warn("Duplicate parallel:", text)
                    continue
                codes.append(code)
            else:
                name = text.split(alias_separator, 1)[0]
                if name in names or name == self.config.root:
                    self.warn("Duplicate witness:", text)
                    continue
                names.add(name)
                declarations.append(text)
        if len(declarations) == 0 and self.config.root is None:
            self.fatal("No witnesses declared")
        self.model.declare(declarations, codes)
        self.parallel = self.model.parallels[0]
        for par in self.model.parallels:
            par.position = self.preamble_position
        if self.config.verbose:
            print("Declared %d witnesses in %d parallel(s)." % (len(self.model.witnesses), len(self.model.parallels)))
        return

    # Syntax: /c
    def do_parallel(self, tok):
        self.require_declared()
        code = tok.text[1:2]
        par = self.model.parallels[0] if code == "" else self.model.find_parallel(code)
        if par is None:
            self.fatal("Unknown parallel:", tok.text)
        self.parallel = par
        return

    # Syntax: = ${name} {members}+ ;   (=+ add, =- subtract, =? check)
    def do_define(self, tok):
        self.require_declared()
        operation = tok.text[1:2]
        if operation not in ["", "+", "-", "?"]:
            self.fatal("Unknown macro operation:", tok.text)
        text = self.next_token().text
        if not text.startswith("$") or len(text) < 2:
            self.fatal("Macro name must begin with $:", text)
        name = text[1:2]
        members = set()
        for text, m, mem in self.member_list():
            if m is not None:
                if m.name == name:
                    self.warn("Macro cannot contain itself:", text)
                    continue
                members |= m.members
                continue
            if mem.status in [member_skipped, member_suppressed]:
                continue
            if mem.status == member_unknown:
                self.unknown_member(text, ";")
                continue
            if mem.status == member_bad_hand or mem.hand > 0:
                self.warn("No macros with correctors:", text)
                continue
            members.add(mem.index)
        registry = self.parallel.macros
        if operation == "+":
            registry.add(name, members)
        elif operation == "-":
            registry.subtract(name, members)
        elif operation == "?":
            if registry.resolve(name) is None:
                self.warn("Unknown macro:", "$" + name)
                return
            for index in registry.check(name, sorted(members)):
                self.warn("Not in macro $%s:" % name, self.model.witnesses[index].name)
        else:
            registry.define(name, members)
        return

    # Syntax: ( {members}+ ;   ) {members}+ ;   # {members}+ ;
    def do_lacuna(self, tok):
        self.require_declared()
        cmd = command.of(tok.text)
        targets = []
        for text, m, mem in self.member_list():
            if m is not None:
                targets.extend([(index, 0) for index in sorted(m.members) if not self.parallel.testimonies[index].suppressed()])
                continue
            if mem.status in [member_skipped, member_suppressed]:
                continue
            if mem.status in [member_unknown, member_bad_hand]:
                self.unknown_member(text, ";")
                continue
            targets.append((mem.index, mem.hand))
        for index, h in targets:
            t = self.parallel.testimonies[index]
            hd = t.hands[h]
            label = self.model.hand_label(self.parallel, t, h, t.witness.name)
            if cmd is command.LACUNA_OPEN:
                if hd.in_lacuna:
                    self.warn("Lacuna already open:", label)
                hd.in_lacuna = True
            elif cmd is command.LACUNA_CLOSE:
                if not hd.in_lacuna:
                    self.warn("No open lacuna:", label)
                hd.in_lacuna = False
            elif not hd.in_lacuna:
                self.warn("Not in lacuna:", label)
        return

    # Syntax: @ {marker}
    def do_position(self, tok):
        text = self.next_token().text
        if self.parallel is None:
            self.preamble_position = text
        else:
            self.parallel.position = text
        return

    # Syntax: [ {lemma}* { | {*n|score} {alternative}* }+ ]
    def do_readings(self, tok):
        self.lemma = ""
        self.piece = self.model.new_piece("", self.position, tok.line)
        unit = None
        while True:
            tok = self.next_token()
            text = tok.text
            if text.startswith("]"):
                break
            if text.startswith('"'):
                self.skip_comment(text)
            elif text.startswith("|"):
                unit = self.model.add_unit(self.piece, self.unit_weight(text), tok.line)
            elif unit is None:
                self.lemma = text if self.lemma == "" else self.lemma + " " + text
                self.piece.lemma = self.lemma
            else:
                unit.readings.append(text)
        if self.piece.width() == 0:
            self.warn("No variation units in reading block")
        return

    """
    Resolves the weight suffix of a "|" token:
    none gives 1, "*n" gives n, a bare number is an edit-distance score divided (rounding up) by the configured divisor,
    and anything else excludes the unit.
    """
    def unit_weight(self, text):
        suffix = text[1:]
        if suffix == "":
            return 1
        if suffix.startswith("*"):
            try:
                weight = int(suffix[1:])
            except ValueError:
                self.warn("Bad weight:", text)
                return 0
            if weight < 0:
                self.warn("Bad weight:", text)
                return 0
            return weight
        if not suffix.isdigit():
            return 0 # conditional inclusion (e.g., scribal errors) is left to later passes
        score = int(suffix)
        if score == 0:
            return 0
        if self.config.ed_divisor == 0:
            return 1
        return math.ceil(score / self.config.ed_divisor)

    # Syntax: < {states} {members}+ { | {states} {members}+ }* >
    def do_witnesses(self, tok):
        self.require_declared()
        if self.piece is None:
            self.fatal("Witnesses assigned before any readings")
        par = self.parallel
        pc = self.piece
        levels = {} # dictionary mapping (witness index, hand) to the priority key of its assignment in this block
        none_key = (priority.NONE, 0)
        explicit_key = (priority.EXPLICIT, 0)
        states_expected = True
        current = None # reading set of the current group
        while True:
            text = self.next_token().text
            if text.startswith(">"):
                break
            if text.startswith('"'):
                self.skip_comment(text)
                continue
            if text.startswith("|"):
                states_expected = True
                continue
            if states_expected and not text.startswith("$"):
                if len(text) != pc.width():
                    self.fatal("Variant mismatch:", "%s (%d) should have exactly %d" % (text, len(text), pc.width()))
                current = self.model.new_reading_set(text)
                states_expected = False
                continue
            if current is None or states_expected:
                self.warn("Missing states before:", text)
                continue
            if text.startswith("$"):
                m = par.macros.resolve(text[1:2])
                if m is None:
                    self.warn("Unknown macro:", text)
                    continue
                for index in sorted(m.members):
                    t = par.testimonies[index]
                    if t.suppressed() or t.hands[0].in_lacuna:
                        continue
                    key = levels.get((index, 0), none_key)
                    if key > m.key:
                        continue
                    if key == m.key:
                        self.warn("Duplicate macro:", "%s (%s)" % (text, t.witness.name))
                        continue
                    t.hands[0].cells[pc.index] = current
                    levels[(index, 0)] = m.key
                continue
            mem = self.model.resolve_member(par, text)
            if mem.status in [member_skipped, member_suppressed]:
                continue
            if mem.status in [member_unknown, member_bad_hand]:
                if text.startswith("<"):
                    self.fatal("Unknown:", text)
                self.unknown_member(text, ">")
                continue
            t = par.testimonies[mem.index]
            if t.hands[mem.hand].in_lacuna:
                self.warn("In lacuna (use $%s):" % unknown_macro, text)
                continue
            if levels.get((mem.index, mem.hand)) == explicit_key:
                self.warn("Duplicate:", text)
                continue
            t.hands[mem.hand].cells[pc.index] = current
            levels[(mem.index, mem.hand)] = explicit_key
        # Close the block: let $? clear non-explicit assignments, and report witnesses left without a reading:
        unknown = par.macros.resolve(unknown_macro)
        for t in par.testimonies:
            if t.witness.is_root or t.suppressed():
                continue
            index = t.witness.index
            if index in unknown and levels.get((index, 0), none_key) < explicit_key:
                t.hands[0].cells.pop(pc.index, None)
                continue
            if t.hands[0].in_lacuna:
                continue
            if pc.index not in t.hands[0].cells:
                self.warn("Unassigned:", self.model.hand_label(par, t, 0, t.witness.name))
        return

    # Syntax: ^ {file}
    def do_chronology(self, tok):
        self.require_declared()
        text = self.next_token().text
        path = self.config.expand_home(text)
        if self.config.verbose:
            print("Reading chronology from %s..." % path)
        t0 = time.time()
        try:
            entries, bad_rows = read_chronology(path)
        except OSError:
            self.fatal("Cannot open file:", text)
        for row in bad_rows:
            self.warn("Bad chronology entry:", "%s line %d" % (text, row))
        for name, min_date, mid_date, max_date in entries:
            base, _, suffix = name.partition(hand_separator)
            h = 0
            if suffix:
                try:
                    h = int(suffix)
                except ValueError:
                    h = -1
                if h < 0 or h >= self.config.max_hands:
                    self.warn("Bad hand in chronology:", name)
                    continue
            for index in self.model.find_alt(base):
                for par in self.model.parallels:
                    t = par.testimonies[index]
                    t.hands[h].set_dates(min_date, mid_date, max_date)
                    t.hands[h].dated = True
                    if h != 0:
                        continue
                    for hd in t.hands[1:]:
                        if not hd.dated:
                            hd.set_dates(min_date, mid_date, math.inf)
        t1 = time.time()
        if self.config.verbose:
            print("Done in %0.4fs." % (t1 - t0))
        return

    # Syntax: ~ {name} {alt-name} {display-name}
    def do_alias(self, tok):
        self.require_declared()
        text = self.next_token().text
        alt_name = self.next_token().text
        display_name = self.next_token().text
        mem = self.model.resolve_member(self.parallel, text)
        if mem.status in [member_skipped, member_suppressed]:
            return
        if mem.status == member_unknown:
            self.fatal("Unknown:", text)
        if mem.status == member_bad_hand or mem.hand > 0:
            self.fatal("Cannot have a corrector:", text)
        w = self.model.witnesses[mem.index]
        w.alt_name = alt_name
        w.display_name = display_name
        return

    # Syntax: - {members}+ ;
    def do_suppress(self, tok):
        self.require_declared()
        for text, m, mem in self.member_list():
            if m is not None:
                for index in sorted(m.members):
                    self.parallel.testimonies[index].suppress(0, force=True)
                continue
            if mem.status == member_skipped:
                continue
            if mem.status == member_suppressed:
                self.warn("Already suppressed:", text)
                continue
            if mem.status in [member_unknown, member_bad_hand]:
                self.unknown_member(text, ";")
                continue
            self.parallel.testimonies[mem.index].suppress(mem.hand, force=True)
        return

    # Syntax: " {words}* "
    def do_comment(self, tok):
        self.skip_comment(tok.text)
        return

    # Syntax: + {tokens}* ;
    def do_discard(self, tok):
        while not self.next_token().text.startswith(";"):
            pass
        return

    def do_section(self, tok):
        return

    """
    Returns the one-line summary of the interpreted collation.
    """
    def summary(self):
        return "Parallels=%d; MSS=%d; VarUnits=%d; Pieces=%d; Sets=%d" % (len(self.model.parallels), len(self.model.witnesses), len(self.model.units), len(self.model.pieces), self.model.n_sets)
