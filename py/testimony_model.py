#!/usr/bin/env python3

import math # for the open-ended latest date of undated hands
import itertools # for the macro creation sequence
from collections import namedtuple
import numpy as np # for state rows and weight vectors
from common import *
from macro_registry import macro_registry

"""
Outcomes of resolving a witness token (name or name:h) against a parallel
"""
member_found = "found"
member_unknown = "unknown" # no such witness (the root cannot be named)
member_suppressed = "suppressed" # the named hand is suppressed
member_bad_hand = "bad hand" # corrector number out of range or malformed
member_skipped = "skipped" # token starts with "-": deliberately ignored

member = namedtuple("member", ["status", "index", "hand"])

"""
The states entered for one witness assignment group, one character per variation unit of a piece.
Reading sets are shared by reference among every hand they are assigned to and are never changed after creation.
Equality is identity: two reading sets with the same text are still different reading sets.
"""
class reading_set():
    __slots__ = ("states", "serial")

    def __init__(self, states, serial):
        self.states = states.replace(lacunose_state, missing_state).replace(unassigned_state, missing_state)
        self.serial = serial # creation order within the run

    def __len__(self):
        return len(self.states)

    def __getitem__(self, i):
        return self.states[i]

    def __str__(self):
        return self.states

    def __repr__(self):
        return "reading_set(%r, %d)" % (self.states, self.serial)

    def __setattr__(self, name, value):
        if hasattr(self, name):
            raise AttributeError("reading_set instances are immutable")
        object.__setattr__(self, name, value)

"""
A manuscript (taxon).
"""
class witness():
    def __init__(self, index, name, alt_name=None, display_name=None, is_root=False):
        self.index = index
        self.name = name # name used in the collation
        self.alt_name = name if alt_name is None else alt_name # cross-reference name (matched against chronology entries)
        self.display_name = name if display_name is None else display_name # name used in output files
        self.is_root = is_root

    """
    Constructs a witness from a declaration token of the form name[~alt[~display]].
    """
    @classmethod
    def from_declaration(cls, index, declaration, is_root=False):
        parts = declaration.split(alias_separator, 2)
        name = parts[0]
        alt_name = parts[1] if len(parts) > 1 else None
        display_name = parts[2] if len(parts) > 2 else name
        return cls(index, name, alt_name, display_name, is_root)

    def __repr__(self):
        return "witness(%d, %s~%s~%s)" % (self.index, self.name, self.alt_name, self.display_name)

"""
One position where witnesses may disagree.
"""
class variation_unit():
    def __init__(self, index, piece_index, weight=1, line=0):
        self.index = index # index among all elementary units of the collation
        self.piece_index = piece_index
        self.weight = weight # number of matrix columns; 0 excludes the unit from the output
        self.readings = [] # reading alternatives as entered
        self.line = line

"""
One or more variation units read together as one fixed-width state string.
"""
class piece():
    def __init__(self, index, lemma="", position=default_position, line=0):
        self.index = index
        self.lemma = lemma
        self.position = position # position marker current when the piece was declared
        self.line = line
        self.units = []

    def width(self):
        return len(self.units)

"""
One corrector's (or the original scribe's, for index 0) testimony of a witness in one parallel.
"""
class hand():
    def __init__(self, index, suppressed=False):
        self.index = index
        self.cells = {} # dictionary mapping piece indices to reading sets
        self.suppressed = suppressed
        self.mandated = False # explicitly requested; exempt from automatic suppression
        self.in_lacuna = False # inside an open lacuna span
        self.dated = False # has its own chronology entry
        self.earliest = 0
        self.average = 0
        self.latest = math.inf # open until a chronology entry closes it
        self.stratum = 0
        self.last_hand = 0 # nearest earlier hand that survived the reduction

    def set_dates(self, earliest, average, latest):
        self.earliest = earliest
        self.average = average
        self.latest = latest
        return

    def has_chronology(self):
        return self.latest != math.inf

"""
All hands of one witness in one parallel.
"""
class testimony():
    def __init__(self, witness, parallel, max_hands):
        self.witness = witness
        self.parallel = parallel
        self.hands = [hand(h) for h in range(max_hands)]
        self.corrected = False # more than one hand survived the reduction

    """
    Returns the reading set for a piece on a hand.
    If inherit is set and the hand has no cell there, the cell is taken from the nearest earlier surviving hand.
    """
    def cell(self, h, piece_index, inherit=True):
        r = self.hands[h].cells.get(piece_index)
        seen = set()
        while r is None and inherit and h > 0 and h not in seen:
            seen.add(h)
            h = self.hands[h].last_hand
            r = self.hands[h].cells.get(piece_index)
        return r

    """
    Suppresses a hand; suppressing the original hand suppresses the whole witness.
    Mandated hands are left alone unless force is set.
    """
    def suppress(self, h, force=False):
        targets = range(len(self.hands)) if h == 0 else [h]
        for i in targets:
            if force or not self.hands[i].mandated:
                self.hands[i].suppressed = True
        return

    def suppressed(self):
        return self.hands[0].suppressed

    def active_hands(self):
        return [hd for hd in self.hands if not hd.suppressed]

"""
An alternate textual tradition sharing the witness list.
"""
class parallel():
    def __init__(self, index, code, witnesses, max_hands, sequence):
        self.index = index
        self.code = code # one-character namespace code ("" for the default parallel)
        self.position = default_position # current position marker
        self.macros = macro_registry([w.index for w in witnesses if not w.is_root], sequence)
        self.testimonies = [testimony(w, self, max_hands) for w in witnesses]

"""
The testimony of every witness, in every parallel, by every hand, at every piece of the collation,
together with the pieces, variation units and weights declared for it.
"""
class testimony_model():
    def __init__(self, root=None, root_state=default_root_state, max_hands=default_max_hands):
        self.root = root # name of the root witness, if any
        self.root_state = root_state
        self.max_hands = max_hands
        self.witnesses = [] # list of witnesses (the root, if any, first)
        self.parallels = [] # list of parallels (at least one once witnesses are declared)
        self.pieces = [] # list of pieces in order of declaration
        self.units = [] # list of elementary variation units in order of declaration
        self.weighted_total = 0 # sum of the weights of all units
        self.n_sets = 0 # number of reading sets created
        self.sequence = itertools.count(1) # creation sequence shared by all macro registries

    """
    Creates the witnesses and parallels from the declaration block.
    The root, if configured, is placed first, suppressed in every parallel but the first, and mandated there.
    """
    def declare(self, declarations, parallel_codes):
        self.witnesses = []
        if self.root is not None:
            self.witnesses.append(witness.from_declaration(0, self.root, is_root=True))
        for declaration in declarations:
            self.witnesses.append(witness.from_declaration(len(self.witnesses), declaration))
        if len(parallel_codes) == 0:
            parallel_codes = [default_parallel_code]
        self.parallels = [parallel(i, code, self.witnesses, self.max_hands, self.sequence) for i, code in enumerate(parallel_codes)]
        if self.root is not None:
            for par in self.parallels:
                par.testimonies[0].suppress(0, force=True)
            root_hand = self.parallels[0].testimonies[0].hands[0]
            root_hand.set_dates(0, 0, 0)
            root_hand.dated = True
            root_hand.suppressed = False
            root_hand.mandated = True
        return

    def declared(self):
        return len(self.parallels) > 0

    def find_parallel(self, code):
        for par in self.parallels:
            if par.code == code:
                return par
        return None

    """
    Returns the index of the witness with the given collation name, or None.
    """
    def find_witness(self, name):
        for w in self.witnesses:
            if w.name == name:
                return w.index
        return None

    """
    Returns the indices of all witnesses with the given cross-reference name.
    """
    def find_alt(self, alt_name):
        return [w.index for w in self.witnesses if w.alt_name == alt_name]

    """
    Resolves a witness token of the form name[:h] in the given parallel.
    A trailing "." is dropped (ECM data uses it as a witness separator).
    """
    def resolve_member(self, par, text):
        name = text
        if name.startswith("-"):
            return member(member_skipped, None, 0)
        if len(name) > 1 and name.endswith("."):
            name = name[:-1]
        h = 0
        if hand_separator in name:
            name, _, suffix = name.partition(hand_separator)
            try:
                h = int(suffix)
            except ValueError:
                return member(member_bad_hand, None, 0)
            if h < 0 or h >= self.max_hands:
                return member(member_bad_hand, None, h)
        index = self.find_witness(name)
        if index is None or self.witnesses[index].is_root:
            return member(member_unknown, None, h)
        if par.testimonies[index].hands[h].suppressed:
            return member(member_suppressed, index, h)
        return member(member_found, index, h)

    def is_designated_root(self, par, t):
        return self.root is not None and par.index == 0 and t.witness.index == 0

    def new_piece(self, lemma, position, line):
        pc = piece(len(self.pieces), lemma, position, line)
        self.pieces.append(pc)
        return pc

    def add_unit(self, pc, weight, line=0):
        unit = variation_unit(len(self.units), pc.index, weight, line)
        pc.units.append(unit)
        self.units.append(unit)
        self.weighted_total += weight
        return unit

    """
    Excludes a unit from the output, removing its weight from the weighted total.
    """
    def eliminate_unit(self, unit):
        self.weighted_total -= unit.weight
        unit.weight = 0
        return

    def new_reading_set(self, states):
        self.n_sets += 1
        return reading_set(states, self.n_sets)

    def weights(self):
        return np.array([unit.weight for unit in self.units], dtype=int)

    """
    Returns the states of a hand over every elementary unit, with a mask of the units where the hand has a cell.
    Cells are inherited from earlier hands unless inherit is False.
    Where there is no cell, the state is the root state for the designated root and missing otherwise.
    """
    def state_row(self, par, t, h, inherit=True):
        default = self.root_state if self.is_designated_root(par, t) else missing_state
        states = []
        present = []
        for pc in self.pieces:
            r = t.cell(h, pc.index, inherit)
            if r is None:
                states.extend(default * pc.width())
                present.extend([False] * pc.width())
            else:
                states.extend(r.states)
                present.extend([True] * pc.width())
        return np.array(states, dtype="<U1"), np.array(present, dtype=bool)

    """
    Yields (parallel, testimony, hand) for every surviving hand, in output order.
    """
    def active_hands(self):
        for par in self.parallels:
            for t in par.testimonies:
                for hd in t.hands:
                    if not hd.suppressed:
                        yield par, t, hd
        return

    def n_active(self):
        return sum(1 for _ in self.active_hands())

    """
    Returns the output label of a hand: the name, ":h" if the witness has correctors, and "/c" for a named parallel.
    """
    def hand_label(self, par, t, h, name=None):
        label = t.witness.display_name if name is None else name
        if t is not None and t.corrected:
            label += "%s%d" % (hand_separator, h)
        if par.code:
            label += parallel_separator + par.code
        return label
