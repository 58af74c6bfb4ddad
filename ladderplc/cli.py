"""Command-line interface for ladderplc."""

import sys
import logging
from typing import List, Optional

import click

from .config import LadderConfig, find_config, load_config
from .converter import build_network, trace_network
from .errors import LadderError
from .graph_export import export_network
from .json_io import load_il_from_file, load_network_from_file, save_il_to_file, save_network_to_file
from .session import SimulationSession
from .simulator import SimulationContext, run_cycle

logger = logging.getLogger(__name__)


def _load_settings(config_path: Optional[str]) -> LadderConfig:
    if config_path:
        return load_config(config_path)
    found = find_config()
    return load_config(found) if found else LadderConfig()


def _make_context(config: LadderConfig) -> SimulationContext:
    return SimulationContext(
        variables=config.create_variables(),
        memoize_stateful=config.simulation.memoize_stateful,
    )


def _convert(mode: str, input_file: str, output_file: str, config: LadderConfig):
    if mode == 'il2ld':
        instructions = load_il_from_file(input_file)
        network = build_network(instructions)
        save_network_to_file(network, output_file)
        click.echo(f"✅ Converted {len(instructions)} IL instructions to LD network: {output_file}")
    else:
        network = load_network_from_file(input_file)
        instructions = trace_network(network, config.trace.to_options())
        save_il_to_file(instructions, output_file)
        click.echo(f"✅ Converted LD network to {len(instructions)} IL instructions: {output_file}")


@click.command(context_settings={"help_option_names": ["-h", "--help"]})
@click.option('--input', '-i', 'input_file', type=click.Path(exists=True, dir_okay=False), help='Input file (IL JSON/text or LD JSON)')
@click.option('--output', '-o', 'output_file', type=click.Path(dir_okay=False), help='Output file')
@click.option('--convert', '-c', 'mode', type=click.Choice(['il2ld', 'ld2il']), help='Conversion direction')
@click.option('--simulate', '-s', 'simulate_file', type=click.Path(exists=True, dir_okay=False), help='Simulate an LD network JSON file')
@click.option('--visual', '-v', is_flag=True, help='Show element outputs while simulating')
@click.option('--export', '-e', 'export_file', type=click.Path(dir_okay=False), help='Export the simulated network to DOT or GraphML')
@click.option('--config', 'config_path', type=click.Path(dir_okay=False), help='YAML configuration file')
@click.option('--verbose', is_flag=True, help='Verbose output')
@click.pass_context
def cli(ctx, input_file, output_file, mode, simulate_file, visual, export_file, config_path, verbose):
    """Convert between IEC 61131-3 IL and LD, and simulate LD networks.

    \b
    Examples:
      ladderplc -i program.il -o network.json -c il2ld
      ladderplc -i network.json -o program.json -c ld2il
      ladderplc -s network.json -v
      ladderplc -s network.json -e network.dot
    """
    config = _load_settings(config_path)
    logging.basicConfig(level=logging.DEBUG if verbose else getattr(logging, config.log_level, logging.WARNING))

    try:
        if mode:
            if not input_file or not output_file:
                click.echo("❌ Error: conversion requires both --input and --output", err=True)
                ctx.exit(1)
            _convert(mode, input_file, output_file, config)

        elif simulate_file:
            network = load_network_from_file(simulate_file)
            context = _make_context(config)
            if export_file:
                run_cycle(network, context)
                export_network(network, export_file, context.output_snapshot())
                click.echo(f"✅ Exported network {network.id} to {export_file}")
            else:
                session = SimulationSession(network, context, config.simulation, visual=visual)
                session.run_interactive()

        else:
            click.echo(ctx.get_help())
            ctx.exit(1)

    except (LadderError, OSError, ValueError) as e:
        click.echo(f"❌ Error: {e}", err=True)
        if verbose:
            logger.exception("Command failed")
        ctx.exit(1)


def main(args: Optional[List[str]] = None):
    """Console entry point; every error, usage errors included, exits with status 1."""
    try:
        rv = cli.main(args=args, prog_name="ladderplc", standalone_mode=False)
    except click.ClickException as e:
        e.show()
        sys.exit(1)
    except click.Abort:
        click.echo("Aborted!", err=True)
        sys.exit(1)
    sys.exit(rv or 0)


if __name__ == '__main__':
    main()
