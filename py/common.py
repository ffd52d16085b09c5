#!/usr/bin/env python3

"""
State characters used in witness assignment blocks
"""
missing_state = "?" # no data for this witness at this variation unit
lacunose_state = "." # physically missing text; stored as missing_state
unassigned_state = ":" # deliberately unassigned; stored as missing_state
default_root_state = "0" # state of the root witness wherever it has no cell

"""
Reserved macro names (one character each, referenced as $* and $?)
"""
all_macro = "*"
unknown_macro = "?"

"""
Separators inside witness tokens
"""
alias_separator = "~" # name~alt~display in the witness declaration
hand_separator = ":" # name:h for corrector h
parallel_separator = "/" # name/c on the command line, /c in the collation

"""
Default settings
"""
default_parallel_code = ""
default_position = "Beginning"
default_max_hands = 4 # original scribe plus three correctors
default_ed_divisor = 6 # edit-distance scores are divided by this to give weights
large_collation_units = 200 # collations with more elementary units use the fixed correction threshold
large_collation_corr_threshold = 100

"""
Upper bounds (inclusive) of the literary periods used when no year granularity is requested
"""
literary_strata = [100, 350, 450, 600, 775, 950, 1100, 1200, 1300, 1400, 1500, 1600, 9999]

"""
Process exit codes (a positive count below these is the number of warnings)
"""
exit_ok = 0
exit_config_error = 252
exit_fatal = 253
exit_init_failure = 254

"""
XML namespaces (for TEI exports)
"""
xml_ns = "http://www.w3.org/XML/1998/namespace"
tei_ns = "http://www.tei-c.org/ns/1.0"
