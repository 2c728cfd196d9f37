"""`channelsizer` command line interface
"""
import logging

import click
from tqdm import tqdm

from .workflows import BatchChannelSizing
from .services.spreadsheet import write_template
from .calculators.idf import IdfCalculator
from .calculators.stats import success_rate
from .exceptions import ChannelSizerError, InputTableError

LOG_LEVELS = [logging.WARNING, logging.INFO, logging.DEBUG]


@click.group()
@click.option("-v", "--verbose", count=True, help="-v for progress details, -vv for debugging")
def cli(verbose):
    """Rational Method peak flow and Manning's equation channel sizing."""
    logging.basicConfig(
        level=LOG_LEVELS[min(verbose, len(LOG_LEVELS) - 1)],
        format="%(asctime)s %(levelname)s %(name)s: %(message)s"
    )


@cli.command()
@click.argument("input_table", type=click.Path(exists=True, dir_okay=False))
@click.argument("output_table", type=click.Path(dir_okay=False, writable=True))
@click.option("--sheet", default=None, help="worksheet to read from an .xlsx input")
@click.option("--idf-constants", type=click.Path(exists=True, dir_okay=False), default=None,
              help="JSON file of IDF constants; defaults to the bundled Hong Kong table")
@click.option("--use-idf/--no-idf", default=None,
              help="force IDF rainfall on (or off) for every channel")
@click.option("--config", "config_json", type=click.Path(exists=True, dir_okay=False), default=None,
              help="load workflow settings from a JSON config")
@click.option("--save-config", type=click.Path(dir_okay=False, writable=True), default=None,
              help="save the workflow config, with results, to JSON")
def size(input_table, output_table, sheet, idf_constants, use_idf, config_json, save_config):
    """Size every channel in INPUT_TABLE and write results to OUTPUT_TABLE.

    Tables may be .csv or .xlsx.
    """
    # only override the config file with options that were given
    overrides = dict(
        input_filepath=input_table,
        output_filepath=output_table,
        sheet=sheet,
        idf_constants_filepath=idf_constants,
        use_idf_override=use_idf,
    )
    overrides = {k: v for k, v in overrides.items() if v is not None}

    try:
        workflow = BatchChannelSizing(config_json_filepath=config_json, **overrides)
        channels = workflow.load_channels()
    except InputTableError as e:
        for msg in e.errors:
            click.echo(msg, err=True)
        click.echo(f"Error: {e}", err=True)
        raise SystemExit(1)
    except ChannelSizerError as e:
        raise click.ClickException(str(e))

    with tqdm(total=len(channels), desc="Sizing channels", unit="channel", disable=None) as pbar:
        summary = workflow.run(on_progress=lambda done, total: pbar.update(1))

    try:
        workflow.export()
    except ChannelSizerError as e:
        raise click.ClickException(str(e))

    if save_config:
        workflow.save_config(save_config)

    click.echo(
        f"{summary.successful_channels} of {summary.total_channels} channels OK "
        f"({success_rate(summary):.1f}%), {summary.failed_channels} not OK"
    )
    for e in summary.errors:
        click.echo(f"  {e}")
    click.echo(f"Results saved to {output_table}")


@cli.command()
@click.argument("output_table", type=click.Path(dir_okay=False, writable=True))
def template(output_table):
    """Write a channel table template (.csv or .xlsx) to OUTPUT_TABLE."""
    write_template(output_table)
    click.echo(f"Template saved to {output_table}")


@cli.command()
@click.argument("return_period", type=int)
@click.argument("duration", type=float)
@click.option("--climate-adjustment", is_flag=True, default=False,
              help="apply the +28.1% climate change uplift")
@click.option("--idf-constants", type=click.Path(exists=True, dir_okay=False), default=None,
              help="JSON file of IDF constants; defaults to the bundled Hong Kong table")
def idf(return_period, duration, climate_adjustment, idf_constants):
    """Rainfall intensity for RETURN_PERIOD (years) and DURATION (minutes)."""
    calculator = IdfCalculator(filepath=idf_constants)
    try:
        result = calculator(return_period, duration, climate_adjustment)
    except ChannelSizerError as e:
        raise click.ClickException(
            f"{e}. Available return periods: {', '.join(str(rp) for rp in calculator.return_periods)}"
        )
    click.echo(result.formula)
    click.echo(f"Raw intensity: {result.raw_intensity:.1f} mm/hr")
    if result.climate_change_applied:
        click.echo(f"Climate-adjusted intensity: {result.intensity:.1f} mm/hr")
    click.echo(f"Design intensity: {result.intensity:.1f} mm/hr ({result.intensity_si:.3e} m/s)")


if __name__ == "__main__":
    cli()
