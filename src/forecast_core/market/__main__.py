"""Allow running the scenario runner as: python -m forecast_core.market --scenario path [--config path]."""

from forecast_core.market.runner import cli

cli()
