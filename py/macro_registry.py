#!/usr/bin/env python3

import itertools # for the creation sequence shared by all registries of a run
from enum import IntEnum
from common import *

"""
Priority tiers of a reading assignment.
Within a tier, later-created macros outrank earlier ones (see macro.key).
"""
class priority(IntEnum):
    NONE = 0 # no assignment yet
    ALL = 1 # the reserved "all witnesses" macro
    ORDINARY = 2 # user-defined macros
    UNKNOWN = 3 # the reserved "unknown reading" macro
    EXPLICIT = 4 # a witness listed by name

"""
A named set of witnesses (by index) within one parallel.
"""
class macro():
    def __init__(self, name, tier, sequence, members=()):
        self.name = name # one-character name (referenced as "$" + name)
        self.tier = tier # priority tier
        self.sequence = sequence # creation order, used to rank macros of the same tier
        self.members = set(members) # indices of the member witnesses

    """
    Returns the key used to rank this macro's assignments against others.
    """
    @property
    def key(self):
        return (self.tier, self.sequence)

    def __contains__(self, witness_index):
        return witness_index in self.members

    def __repr__(self):
        return "macro($%s, %s, %d, %d members)" % (self.name, self.tier.name, self.sequence, len(self.members))

"""
Mapping from one-character names to the macros defined in one parallel.
"""
class macro_registry():
    """
    Constructs a registry containing the two reserved macros:
    "all witnesses" (every given witness index) and "unknown reading" (initially empty).
    The sequence counter is shared by all registries of a run so that creation order is global.
    """
    def __init__(self, witness_indices, sequence=None):
        self.sequence = itertools.count(1) if sequence is None else sequence
        self.macros = {} # dictionary mapping macro names to macros
        self.macros[all_macro] = macro(all_macro, priority.ALL, next(self.sequence), witness_indices)
        self.macros[unknown_macro] = macro(unknown_macro, priority.UNKNOWN, next(self.sequence))

    def __contains__(self, name):
        return name in self.macros

    def __iter__(self):
        return iter(self.macros.values())

    """
    Returns the macro with the given name, or None if it has not been defined.
    """
    def resolve(self, name):
        return self.macros.get(name)

    """
    Returns the macro with the given name, creating an empty ordinary macro if it does not exist yet.
    """
    def get_or_create(self, name):
        if len(name) != 1:
            raise ValueError("Macro names are one character long (got %r)." % name)
        if name not in self.macros:
            self.macros[name] = macro(name, priority.ORDINARY, next(self.sequence))
        return self.macros[name]

    """
    Replaces the membership of the named macro (created if needed).
    """
    def define(self, name, members):
        m = self.get_or_create(name)
        m.members = set(members)
        return m

    """
    Adds members to the named macro (created if needed).
    """
    def add(self, name, members):
        m = self.get_or_create(name)
        m.members |= set(members)
        return m

    """
    Removes members from the named macro (created if needed).
    """
    def subtract(self, name, members):
        m = self.get_or_create(name)
        m.members -= set(members)
        return m

    """
    Checks that every given witness index belongs to the named macro, without changing anything.
    Returns the indices that do not belong (all of them if the macro does not exist).
    """
    def check(self, name, members):
        m = self.resolve(name)
        if m is None:
            return list(members)
        return [member for member in members if member not in m.members]
