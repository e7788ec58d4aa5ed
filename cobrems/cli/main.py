"""
Main CLI entry point for cobrems.
"""

import argparse
import sys

import numpy as np

from cobrems.core.logging_config import setup_logging, get_logger

logger = get_logger("cli.main")


def info_cmd(args):
    """Print beamline and crystal summaries."""
    from cobrems.generator.radiator import RadiatorModel

    logger.info(f"Loading configuration from {args.config}")
    model = RadiatorModel.from_config(args.config)

    print(model.print_beamline_info())
    print()
    print(model.print_target_crystal_info())


def spectrum_cmd(args):
    """Spectrum tabulation command."""
    from cobrems.generator.radiator import RadiatorModel

    if not 0 < args.xmin < args.xmax < 1:
        raise ValueError(f"Need 0 < xmin < xmax < 1, got {args.xmin}, {args.xmax}")

    logger.info(f"Loading configuration from {args.config}")
    model = RadiatorModel.from_config(args.config)

    xvalues = np.linspace(args.xmin, args.xmax, args.nbins)
    logger.info(f"Computing spectrum on {args.nbins} points")
    table = model.spectrum_table(xvalues)

    if args.convolve:
        logger.info("Applying beam-crystal convolution")
        for column in ("dNtdx", "dNcdx"):
            values = table[column].to_numpy(copy=True)
            model.apply_beam_crystal_convolution(xvalues, values)
            table[column] = values

    if args.output:
        table.to_csv(args.output, index=False)
        print(f"Spectrum saved to {args.output}")
    else:
        print(table.to_string(index=False, float_format=lambda v: f"{v:.6e}"))

    logger.info("Spectrum computation complete")


def main(argv=None):
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(
        description="cobrems: coherent bremsstrahlung photon rates",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )

    parser.add_argument("--version", action="version", version="%(prog)s 0.1.0")

    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        default="WARNING",
        help="Set logging level (default: WARNING)",
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # Info command
    info_parser = subparsers.add_parser("info", help="Print beamline and crystal configuration")
    info_parser.add_argument(
        "--config", type=str, required=True, help="Path to configuration file (YAML or JSON)"
    )
    info_parser.set_defaults(func=info_cmd)

    # Spectrum command
    spectrum_parser = subparsers.add_parser("spectrum", help="Tabulate photon spectra")
    spectrum_parser.add_argument(
        "--config", type=str, required=True, help="Path to configuration file (YAML or JSON)"
    )
    spectrum_parser.add_argument(
        "--nbins", type=int, default=100, help="Number of x points (default: 100)"
    )
    spectrum_parser.add_argument(
        "--xmin", type=float, default=0.05, help="Lowest energy fraction (default: 0.05)"
    )
    spectrum_parser.add_argument(
        "--xmax", type=float, default=0.95, help="Highest energy fraction (default: 0.95)"
    )
    spectrum_parser.add_argument(
        "--output", type=str, default=None, help="Output CSV path (default: print to stdout)"
    )
    spectrum_parser.add_argument(
        "--convolve",
        action="store_true",
        help="Smear total and coherent rates by the beam angular spread",
    )
    spectrum_parser.set_defaults(func=spectrum_cmd)

    args = parser.parse_args(argv)

    # Setup logging
    setup_logging(level=args.log_level)

    # Execute command
    if args.command is None:
        parser.print_help()
        sys.exit(1)

    try:
        args.func(args)
    except Exception as e:
        logger.error(f"Error executing command: {e}", exc_info=True)
        sys.exit(1)


if __name__ == "__main__":
    main()
