# src/sqlsizing/cli.py
"""SQL right-sizing advisor CLI."""

import asyncio
import sys
import click
import structlog

from sqlsizing.config.settings import Settings
from sqlsizing.core.exceptions import FinOpsException
from sqlsizing.core.utils import setup_logging
from sqlsizing.discovery.orchestrator import AdvisorOrchestrator
from sqlsizing.reporting.csv_writer import write_report

logger = structlog.get_logger(__name__)


@click.command()
@click.option('--output', '-o', default=None, help='Output CSV file path (default: ADVISOR_OUTPUT_PATH)')
@click.option('--subscription', '-s', 'subscriptions', multiple=True, help='Subscription id to scan (repeatable)')
@click.option('--include-scale-up/--no-include-scale-up', default=None,
              help='Keep ScaleUp suggestions instead of reporting them as NoChange')
@click.option('--delay-ms', type=int, default=None, help='Delay after each billing API call in milliseconds')
@click.option('--max-retries', type=int, default=None, help='Maximum attempts for a throttled billing call')
@click.option('--verbose', '-v', is_flag=True, help='Enable verbose output')
@click.option('--debug', is_flag=True, help='Enable debug logging')
def advise(output, subscriptions, include_scale_up, delay_ms, max_retries, verbose, debug):
    """
    Recommend capacity changes for Azure SQL databases and elastic pools.

    Reads last month's cost from Cost Management and 30 days of utilization from
    Azure Monitor, then writes one CSV row per pool and standalone database.
    Nothing is changed on the scanned resources.

    Configure your .env file with:
        AZURE_SUBSCRIPTION_IDS=sub-id-1,sub-id-2   (optional, default: all accessible)
        AZURE_TENANT_ID / AZURE_CLIENT_ID / AZURE_CLIENT_SECRET   (optional)
        ADVISOR_INCLUDE_SCALE_UP=false
        ADVISOR_CALL_DELAY_MS=0
        ADVISOR_RETRY_ATTEMPTS=5

    Example:
        python -m sqlsizing.cli --output report.csv --subscription <id> -v
    """

    async def run_advisor():
        try:
            settings = Settings.create_from_env()
            log_level = "DEBUG" if debug else settings.log_level.value
            setup_logging(log_level=log_level, log_format=settings.log_format)

            advisor = settings.advisor.model_dump()
            if include_scale_up is not None:
                advisor["include_scale_up"] = include_scale_up
            if delay_ms is not None:
                advisor["call_delay_ms"] = delay_ms
            if max_retries is not None:
                advisor["retry_attempts"] = max_retries
            output_path = output or advisor["output_path"]

            config = {
                "azure": {
                    **settings.azure.model_dump(exclude={"subscription_ids"}),
                    "subscription_ids": list(subscriptions) or settings.azure.subscription_list(),
                },
                "advisor": advisor,
            }

            if verbose:
                click.echo("🔍 SQL capacity right-sizing")
                click.echo(f"📁 Output: {output_path}")
                click.echo(f"📈 Scale-up suggestions: {'included' if advisor['include_scale_up'] else 'suppressed'}")

            orchestrator = AdvisorOrchestrator(config, progress=click.echo if verbose else None)
            rows, summary = await orchestrator.run()

            path = write_report(rows, output_path, advisor["include_scale_up"], summary)

            click.echo("✅ Advisory run completed")
            click.echo(f"📁 Report saved to: {path}")
            click.echo(f"   Resources: {summary.total_rows}")
            for action, count in sorted(summary.actions.items()):
                click.echo(f"   {action}: {count}")
            click.echo(f"   💰 Current monthly cost: {summary.total_cost:.2f} {summary.currency}")
            click.echo(f"   💰 Potential savings: {summary.total_potential_savings:.2f} {summary.currency}")
            if summary.suppressed_scale_ups:
                click.echo(f"   ⚠️  {summary.suppressed_scale_ups} scale-up suggestion(s) reported as NoChange")
            return 0

        except FinOpsException as e:
            click.echo(f"❌ Advisory run failed: {e}")
            return 1
        except Exception as e:
            click.echo(f"❌ Advisory run failed: {e}")
            if debug:
                import traceback
                click.echo(traceback.format_exc())
            return 1

    exit_code = asyncio.run(run_advisor())
    sys.exit(exit_code)


if __name__ == '__main__':
    advise()
