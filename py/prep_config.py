#!/usr/bin/env python3

import os # for reading environment-style settings
from common import *

"""
Settings for one preparation run.
Every setting can be given as an environment variable (the historical interface of the tool)
and overridden by the corresponding command-line option.
"""
class prep_config():
    def __init__(self, year_gran=None, fthresh=None, cthresh=None, year=None, no_singular=False, root=None, root_state=default_root_state, ed_divisor=default_ed_divisor, id_ok=False, id_first=False, max_warnings=0, max_hands=default_max_hands, home=None, verbose=False):
        self.year_gran = year_gran # None or -1 for the literary-period table, 0 for one stratum per year, N for N-year buckets
        self.fthresh = fthresh # fragment threshold override (weighted extant readings needed to keep a witness)
        self.cthresh = cthresh # correction threshold override (weighted changes needed to keep a corrector)
        self.year = year # cut-off year; hands whose earliest possible date is later are suppressed
        self.no_singular = no_singular # flag indicating whether variants without two states attested at least twice are suppressed
        self.root = root # name of an explicit root witness (forced to index 0), if any
        self.root_state = root_state # state character of the root wherever it has no cell
        self.ed_divisor = ed_divisor # divisor applied to edit-distance scores to derive weights (0 disables edit-distance weighting)
        self.id_ok = id_ok # flag indicating whether identical-witness suppression is skipped
        self.id_first = id_first # flag indicating whether identical-witness suppression runs before the second constant-variant pass
        self.max_warnings = max_warnings # number of interpretation warnings tolerated before the run is aborted
        self.max_hands = max_hands # hands per witness (original scribe plus correctors)
        self.home = home # directory substituted for a leading "~" in chronology file paths
        self.verbose = verbose # flag indicating whether or not to print timing and debugging details for the user

    """
    Constructs a configuration from environment-style variables.
    Numeric variables that are set but not integers raise a ValueError.
    """
    @classmethod
    def from_env(cls, environ=None):
        environ = os.environ if environ is None else environ
        config = cls()
        config.year_gran = int_setting(environ, "YEARGRAN")
        config.fthresh = int_setting(environ, "FTHRESH")
        config.cthresh = int_setting(environ, "CTHRESH")
        config.year = int_setting(environ, "YEAR")
        config.no_singular = "NOSING" in environ
        config.root = environ.get("ROOT") or None
        config.root_state = environ.get("ROOTSTATE", default_root_state)[:1] or default_root_state
        ed_divisor = int_setting(environ, "WEIGHBYED")
        config.ed_divisor = default_ed_divisor if ed_divisor is None else ed_divisor
        config.id_ok = "IDOK" in environ
        config.id_first = "IDFIRST" in environ
        max_warnings = int_setting(environ, "MAXWARN")
        config.max_warnings = 0 if max_warnings is None else max_warnings
        max_hands = int_setting(environ, "MAXHAND")
        config.max_hands = default_max_hands if max_hands is None else max_hands
        config.home = environ.get("HOME")
        config.validate()
        return config

    """
    Overrides settings with any command-line options that were given (argparse namespace).
    """
    def apply_args(self, args):
        for name in ["year_gran", "fthresh", "cthresh", "year", "root", "root_state", "ed_divisor", "max_warnings", "max_hands", "home"]:
            value = getattr(args, name, None)
            if value is not None:
                setattr(self, name, value)
        for name in ["no_singular", "id_ok", "id_first", "verbose"]:
            if getattr(args, name, False):
                setattr(self, name, True)
        self.validate()
        return self

    def validate(self):
        if self.max_hands < 1:
            raise ValueError("At least one hand per witness is required (got %d)." % self.max_hands)
        if self.ed_divisor < 0:
            raise ValueError("The edit-distance divisor cannot be negative (got %d)." % self.ed_divisor)
        if self.year_gran is not None and self.year_gran < -1:
            raise ValueError("Year granularity must be -1, 0, or a positive number of years (got %d)." % self.year_gran)
        if len(self.root_state) != 1:
            raise ValueError("The root state must be a single character (got %r)." % self.root_state)
        return

    """
    Expands a leading "~" in a file path against the configured home directory.
    """
    def expand_home(self, path):
        if not path.startswith("~"):
            return path
        home = self.home if self.home is not None else os.path.expanduser("~")
        return home + path[1:]

"""
Reads an integer setting from an environment mapping, returning None if it is unset or empty.
"""
def int_setting(environ, name):
    value = environ.get(name)
    if value is None or value.strip() == "":
        return None
    try:
        return int(value)
    except ValueError:
        raise ValueError("Environment variable %s must be an integer (got %r)." % (name, value))
