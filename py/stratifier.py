#!/usr/bin/env python3

import time # to time calculations for users
from common import *
from diagnostics import report

"""
Returns the index of the literary period containing the given year.
"""
def literary_stratum(year):
    for st, upper_bound in enumerate(literary_strata):
        if year <= upper_bound:
            return st
    return len(literary_strata)

"""
Returns the raw (uncompacted) stratum of a year for the given year granularity:
the literary-period table for None or -1, the year itself for 0, and the nearest N-year bucket for N.
"""
def raw_stratum(year, year_gran=None):
    if year_gran is None or year_gran == -1:
        return literary_stratum(year)
    if year_gran == 0:
        return year
    return (year + year_gran // 2) // year_gran

"""
Assigns every surviving hand a chronological stratum and derives the hands that must precede it.
"""
class stratifier():
    """
    Constructs a new stratifier for the given testimony model and settings (a prep_config).
    """
    def __init__(self, model, config, stream=None):
        self.model = model
        self.config = config
        self.stream = stream # diagnostic stream (standard error if None)
        self.undated = [] # labels of surviving hands without a chronology entry

    """
    Buckets each surviving hand's average date and compacts the buckets in use to consecutive strata, earliest first.
    """
    def stratify(self):
        if self.config.verbose:
            print("Assigning chronological strata...")
        t0 = time.time()
        active = [hd for _, _, hd in self.model.active_hands()]
        raw = {id(hd): raw_stratum(hd.average, self.config.year_gran) for hd in active}
        compacted = {r: st for st, r in enumerate(sorted(set(raw.values())))}
        for hd in active:
            hd.stratum = compacted[raw[id(hd)]]
        t1 = time.time()
        if self.config.verbose:
            print("Done in %0.4fs. %d strata in use." % (t1 - t0, len(compacted)))
        return len(compacted)

    """
    Returns the surviving hands that precede the given hand:
    every hand whose latest possible date is strictly earlier than the given hand's earliest possible date,
    and, for the same witness in the same parallel, the hand itself and its earlier hands.
    Predecessors are (parallel, testimony, hand) triples in output order.
    """
    def predecessors(self, par, t, hd):
        preceding = []
        for par2, t2, hd2 in self.model.active_hands():
            if hd2.latest < hd.earliest:
                preceding.append((par2, t2, hd2))
            elif t2 is t and hd2.index <= hd.index:
                preceding.append((par2, t2, hd2))
        return preceding

    """
    Returns one (parallel, testimony, hand, predecessors) entry per surviving hand, in output order,
    reporting every surviving hand that has no chronology entry.
    """
    def constraints(self):
        self.undated = []
        entries = []
        for par, t, hd in self.model.active_hands():
            if not hd.has_chronology():
                label = self.model.hand_label(par, t, hd.index, t.witness.name)
                self.undated.append(label)
                report("No chron entry for %s ~ %s ~ %s" % (label, self.model.hand_label(par, None, 0, t.witness.alt_name), self.model.hand_label(par, None, 0, t.witness.display_name)), self.stream)
            entries.append((par, t, hd, self.predecessors(par, t, hd)))
        return entries
