#!/usr/bin/env python3

import sys
import argparse # for parsing command-line input
from common import *
from diagnostics import collation_error, reduction_error, report
from prep_config import prep_config
from collation_lexer import collation_lexer
from collation_interpreter import collation_interpreter
from witness_reducer import witness_reducer
from stratifier import stratifier
from collation_writer import collation_writer

"""
Returns the command-line parser. Options left unset fall back to the environment-style settings.
"""
def get_parser():
    parser = argparse.ArgumentParser(prog="prep", description="Prepares a collation for stemmatic analysis: writes a state matrix (.tx), chronological constraints (.no) and a variant listing (.vr) next to the collation file.")
    parser.add_argument("--year-gran", dest="year_gran", type=int, help="Year granularity for strata: -1 for the literary-period table, 0 for one stratum per year, N for N-year buckets. (Default: $YEARGRAN or the literary-period table)")
    parser.add_argument("--fthresh", type=int, help="Weighted extant readings a witness needs to be kept. (Default: $FTHRESH or half the weighted variants, plus one)")
    parser.add_argument("--cthresh", type=int, help="Weighted changes a corrector needs to be kept. (Default: $CTHRESH, or a tenth of the weighted variants plus one, or 100 for large collations)")
    parser.add_argument("--year", type=int, help="Cut-off year: hands whose earliest possible date is later are suppressed. (Default: $YEAR)")
    parser.add_argument("--no-singular", dest="no_singular", action="store_true", help="If set, also suppress variants without two states attested at least twice each. (Default: set if $NOSING is)")
    parser.add_argument("--root", type=str, help="Name of an explicit root witness. (Default: $ROOT)")
    parser.add_argument("--root-state", dest="root_state", type=str, help="State of the root witness where it has no reading. (Default: $ROOTSTATE or 0)")
    parser.add_argument("--weigh-by-ed", dest="ed_divisor", type=int, help="Divisor applied to edit-distance scores to weigh variants; 0 disables it. (Default: $WEIGHBYED or 6)")
    parser.add_argument("--id-ok", dest="id_ok", action="store_true", help="If set, keep witnesses identical to an earlier witness. (Default: set if $IDOK is)")
    parser.add_argument("--id-first", dest="id_first", action="store_true", help="If set, suppress identical witnesses before the second constant-variant pass. (Default: set if $IDFIRST is)")
    parser.add_argument("--max-warnings", dest="max_warnings", type=int, help="Number of warnings tolerated before the run is aborted. (Default: $MAXWARN or 0)")
    parser.add_argument("--max-hands", dest="max_hands", type=int, help="Hands per witness, including the original scribe. (Default: $MAXHAND or 4)")
    parser.add_argument("--home", type=str, help="Directory substituted for a leading ~ in chronology file paths. (Default: $HOME)")
    parser.add_argument("--verbose", action="store_true", help="If set, enable logging for debugging and performance.")
    parser.add_argument("-o", metavar="output", type=str, help="Filename for an additional Excel (.xlsx) or JSON (.json) output of the reduced collation.")
    parser.add_argument("--tei", metavar="tei_output", type=str, help="Filename for an additional TEI XML (.xml) apparatus of the variation units.")
    parser.add_argument("input", type=str, help="Collation input in the prep notation. Output files are written next to it.")
    parser.add_argument("mandates", type=str, nargs="*", help="Witnesses (name, name:hand, name/parallel) or macros ($m) to keep; every other hand is suppressed.")
    return parser

"""
Entry point to the script. Parses command-line arguments and runs the preparation.
Returns 0 on a clean run, the number of warnings if any were tolerated or too many occurred,
and one of the exit codes in common for fatal, configuration or start-up errors.
"""
def main(argv=None):
    argv = sys.argv[1:] if argv is None else argv
    parser = get_parser()
    args = parser.parse_args(argv)
    try:
        config = prep_config.from_env().apply_args(args)
    except ValueError as e:
        report("Error: %s" % e)
        return exit_init_failure
    if args.o is not None and not (args.o.endswith(".xlsx") or args.o.endswith(".json")):
        report("Error: Unrecognized output file format. Please specify a file with format .xlsx or .json.")
        return exit_init_failure
    # Read the collation input:
    input_addr = args.input
    try:
        lexer = collation_lexer.from_file(input_addr)
    except OSError as e:
        report("Cannot open collation file: %s (%s)" % (input_addr, e))
        return exit_init_failure
    print(" ".join(["prep"] + argv))
    # Interpret it into a testimony model:
    interpreter = collation_interpreter(config)
    try:
        n_warnings = interpreter.interpret(lexer)
    except collation_error:
        report("Fatal error, terminating ...")
        return exit_fatal
    print(interpreter.summary())
    model = interpreter.model
    if not model.declared() or len(model.witnesses) == 0:
        report("No witnesses, terminating...")
        return exit_init_failure
    if n_warnings > config.max_warnings:
        report("Too many warnings, terminating ...")
        return warning_code(n_warnings)
    # Reduce it:
    reducer = witness_reducer(model, config)
    try:
        reducer.reduce(args.mandates)
    except reduction_error:
        report("Cannot select the requested witnesses, terminating ...")
        return exit_config_error
    # Then write the outputs:
    strat = stratifier(model, config)
    writer = collation_writer(model, lexer, strat, config.verbose)
    print("Year granularity: %d" % (-1 if config.year_gran is None else config.year_gran))
    print("Active witnesses: %d, weighted variants: %d" % (model.n_active(), model.weighted_total))
    print("Witnesses:" + "".join(" " + model.hand_label(par, t, hd.index) for par, t, hd in model.active_hands()))
    writer.write_all(input_addr)
    output_addr = args.o
    if output_addr is not None:
        if output_addr.endswith(".xlsx"):
            writer.to_excel(output_addr)
        else:
            with open(output_addr, "w", encoding="utf-8") as f:
                f.write(writer.to_json())
    if args.tei is not None:
        writer.to_tei(args.tei)
    return warning_code(n_warnings)

"""
Caps a warning count below the reserved exit codes.
"""
def warning_code(n_warnings):
    return min(n_warnings, exit_config_error - 1)

if __name__=="__main__":
    sys.exit(main())
