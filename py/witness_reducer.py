#!/usr/bin/env python3

import time # to time calculations for users
import numpy as np # for counting states and weighing readings
from common import *
from diagnostics import reduction_error, report
from testimony_model import member_found, member_suppressed

"""
Ordered statistical passes that decide which witnesses, hands and variation units of an interpreted collation survive into the output.
The passes mutate the testimony model in place.
"""
class witness_reducer():
    """
    Constructs a new witness_reducer for the given testimony model and settings (a prep_config).
    """
    def __init__(self, model, config, stream=None):
        self.model = model
        self.config = config
        self.stream = stream # diagnostic stream (standard error if None)
        self.reports = [] # every line written to the diagnostic stream, in order
        self.fthresh = None # fragment threshold used by the last fragment/correction pass
        self.cthresh = None # correction threshold used by the last fragment/correction pass

    def report(self, text):
        self.reports.append(text)
        report(text, self.stream)
        return

    """
    Runs every pass in order:
    mandates, constant variants, fragments and correctors, constant variants again, identical witnesses, and the year cut-off.
    Raises reduction_error (before suppressing anything) if a mandated name cannot be resolved.
    """
    def reduce(self, mandates=()):
        if self.config.verbose:
            print("Reducing witnesses and variation units...")
        t0 = time.time()
        self.mandate(mandates)
        self.suppress_constant()
        self.suppress_fragments()
        if self.config.id_first and not self.config.id_ok:
            self.suppress_identical()
        self.suppress_constant()
        if not self.config.id_first and not self.config.id_ok:
            self.suppress_identical()
        self.suppress_by_year()
        self.relink()
        t1 = time.time()
        if self.config.verbose:
            print("Done in %0.4fs." % (t1 - t0))
        return self.model

    """
    Marks the given witness and macro names mandated and suppresses every other hand.
    Names are name[:h][/c] or $m[/c]; without "/c", a name applies in every parallel.
    Mandating a corrector also mandates the original hand of its witness.
    """
    def mandate(self, names):
        if len(names) == 0:
            return
        problems = []
        targets = [] # list of (testimony, hand index) pairs to mandate
        for name in names:
            base, sep, code = name.partition(parallel_separator)
            pars = self.model.parallels
            if sep:
                par = self.model.find_parallel(code[:1])
                if par is None:
                    problems.append("Unknown parallel: %s" % name)
                    continue
                pars = [par]
            if base.startswith("$"):
                found = False
                for par in pars:
                    m = par.macros.resolve(base[1:2])
                    if m is None:
                        continue
                    found = True
                    targets.extend([(par.testimonies[index], 0) for index in sorted(m.members)])
                if not found:
                    problems.append("Unknown macro: %s" % name)
                continue
            statuses = set()
            for par in pars:
                mem = self.model.resolve_member(par, base)
                statuses.add(mem.status)
                if mem.status == member_found:
                    targets.append((par.testimonies[mem.index], mem.hand))
            if member_found not in statuses:
                problems.append(("Already suppressed: %s" if member_suppressed in statuses else "Unknown: %s") % name)
        if len(problems) > 0:
            for problem in problems:
                self.report("+     %s" % problem)
            raise reduction_error(problems)
        for t, h in targets:
            t.hands[h].mandated = True
            t.hands[0].mandated = True
        for par in self.model.parallels:
            for t in par.testimonies:
                for hd in t.hands:
                    if not hd.suppressed and not hd.mandated:
                        hd.suppressed = True
        return

    """
    Excludes every variation unit at which the surviving hands attest fewer than two distinct states
    (or, with no_singular set, fewer than two states that are each attested at least twice).
    Returns the list of units whose positive weight was removed.
    """
    def suppress_constant(self):
        model = self.model
        rows = [model.state_row(par, t, hd.index)[0] for par, t, hd in model.active_hands()]
        matrix = np.vstack(rows) if len(rows) > 0 else np.empty((0, len(model.units)), dtype="<U1")
        eliminated = []
        for unit in model.units:
            column = matrix[:, unit.index]
            column = column[column != missing_state]
            states, counts = np.unique(column, return_counts=True)
            constant = len(states) <= 1
            if self.config.no_singular and np.count_nonzero(counts >= 2) <= 1:
                constant = True
            if constant:
                if unit.weight > 0:
                    eliminated.append(unit)
                model.eliminate_unit(unit)
        if self.config.verbose:
            print("Suppressed %d constant variation units; %d weighted units remain." % (len(eliminated), model.weighted_total))
        return eliminated

    """
    Returns the fragment and correction thresholds for the current weighted-unit total.
    The defaults are total // 2 + 1 and total // 10 + 1 (strictly more than a half and a tenth),
    so an exact half or tenth does not reach them: a total of 10 gives a fragment threshold of 6.
    """
    def thresholds(self):
        total = self.model.weighted_total
        fthresh = self.config.fthresh
        if fthresh is None:
            fthresh = total // 2 + 1
        cthresh = self.config.cthresh
        if cthresh is None:
            cthresh = large_collation_corr_threshold if len(self.model.units) > large_collation_units else total // 10 + 1
        return fthresh, cthresh

    """
    Suppresses fragmentary witnesses (too few weighted extant readings on the original hand)
    and correctors that change too little relative to the nearest earlier surviving hand.
    Surviving correctors are linked to that hand, and inherited cells are copied onto them by reference.
    """
    def suppress_fragments(self):
        model = self.model
        self.fthresh, self.cthresh = self.thresholds()
        weights = model.weights()
        adjustments = []
        for par in model.parallels:
            for t in par.testimonies:
                if t.suppressed():
                    continue
                t.corrected = False
                states, present = model.state_row(par, t, 0, inherit=False)
                n_extant = int(weights[present & (states != missing_state)].sum())
                if not t.witness.is_root and n_extant < self.fthresh and not t.hands[0].mandated:
                    t.suppress(0)
                    adjustments.append("-%s(%d)" % (model.hand_label(par, t, 0, t.witness.name), n_extant))
                    continue
                last = 0
                for hd in t.hands[1:]:
                    prev = t.hands[last]
                    for pc in model.pieces:
                        if pc.index not in hd.cells and pc.index in prev.cells:
                            hd.cells[pc.index] = prev.cells[pc.index]
                    if hd.suppressed:
                        continue
                    states, present = model.state_row(par, t, hd.index, inherit=False)
                    prev_states, prev_present = model.state_row(par, t, last, inherit=False)
                    n_corrs = int(weights[present & prev_present & (states != prev_states)].sum())
                    label = t.witness.name + hand_separator + str(hd.index) + (parallel_separator + par.code if par.code else "")
                    if n_corrs < self.cthresh and not hd.mandated:
                        hd.suppressed = True
                        if n_corrs > self.cthresh / 2:
                            adjustments.append("-%s(%d)" % (label, n_corrs))
                    else:
                        t.corrected = True
                        hd.last_hand = last
                        last = hd.index
                        adjustments.append("+%s(%d)" % (label, n_corrs))
        self.report("Thresholds: frag=%d, corr=%d; adjustments:%s" % (self.fthresh, self.cthresh, "".join(" " + a for a in adjustments)))
        return

    """
    Suppresses every witness whose original hand shares the very same reading set objects, piece for piece,
    with an earlier-declared surviving witness in the same parallel.
    This compares identity, not text: witnesses given equal states in separate assignment groups are kept.
    """
    def suppress_identical(self):
        model = self.model
        merged = []
        for par in model.parallels:
            for ms, t in enumerate(par.testimonies):
                if t.suppressed() or t.hands[0].mandated:
                    continue
                for t2 in par.testimonies[:ms]:
                    if t2.suppressed():
                        continue
                    if all(t.hands[0].cells.get(pc.index) is t2.hands[0].cells.get(pc.index) for pc in model.pieces):
                        t.suppress(0)
                        merged.append("-%s=%s" % (t.witness.name, t2.witness.name))
                        break
        self.report("Checking identical witnesses:%s Done" % "".join(" " + m for m in merged))
        return merged

    """
    Suppresses every unmandated hand whose earliest possible date is later than the configured cut-off year.
    """
    def suppress_by_year(self):
        year = self.config.year
        if year is None:
            return []
        model = self.model
        removed = []
        for par, t, hd in list(model.active_hands()):
            if hd.suppressed or hd.mandated:
                continue
            if hd.earliest > year:
                t.suppress(hd.index)
                removed.append("-%s(%d)" % (model.hand_label(par, t, hd.index, t.witness.name), hd.earliest))
        self.report("Year suppression at %d:%s" % (year, "".join(" " + r for r in removed)))
        return removed

    """
    Re-links every surviving corrector to the nearest earlier surviving hand and refreshes the "has correctors" flags.
    """
    def relink(self):
        for par in self.model.parallels:
            for t in par.testimonies:
                if t.suppressed():
                    continue
                last = 0
                for hd in t.hands[1:]:
                    if hd.suppressed:
                        continue
                    hd.last_hand = last
                    last = hd.index
                t.corrected = len(t.active_hands()) > 1
        return
