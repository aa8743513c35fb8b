#!/usr/bin/env python3
"""
Forecast Runner - load one symbol, backtest both models, forecast the next horizon.

Settings default to the FORECAST_* variables in keys.env / .env and can be
overridden on the command line.
"""

import argparse
import logging
import sys
from pathlib import Path

# Add src to path
project_root = Path(__file__).parent
sys.path.insert(0, str(project_root / "src"))

from price_forecast import ForecastPipeline, PipelineConfig, PipelineError
from price_forecast.data import PriceLoader
from price_forecast.utils.config import ensure_directories

logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)


def main():
    parser = argparse.ArgumentParser(description="Single-equity forecast runner")
    parser.add_argument("--data", help="Price table with date,symbol,open,high,low,close,volume")
    parser.add_argument("--symbol", help="Symbol to forecast")
    parser.add_argument("--start-date", help="Ignore rows before this date (YYYY-MM-DD)")
    parser.add_argument("--horizon", type=int, help="Forecast horizon and lag depth in rows")
    parser.add_argument("--assessment", help="Assessment window, e.g. '8 weeks'")
    parser.add_argument("--fetch", nargs=2, metavar=("START", "END"),
                        help="Download prices with yfinance instead of reading --data")
    parser.add_argument("--results-dir", help="Directory for tables and charts")
    parser.add_argument("--no-charts", action="store_true", help="Skip chart rendering")

    args = parser.parse_args()

    overrides = {}
    if args.data:
        overrides['data_path'] = Path(args.data)
    if args.symbol:
        overrides['symbol'] = args.symbol
    if args.start_date:
        overrides['start_date'] = args.start_date
    if args.horizon:
        overrides['forecast_horizon'] = args.horizon
        overrides['lag_depth'] = args.horizon
    if args.assessment:
        overrides['assessment'] = args.assessment
    if args.results_dir:
        overrides['results_dir'] = Path(args.results_dir)
    if args.no_charts:
        overrides['render_charts'] = False

    config = PipelineConfig.from_env(**overrides)
    ensure_directories()

    try:
        pipeline = ForecastPipeline(config)
        prices = None
        if args.fetch:
            prices = PriceLoader().fetch(config.symbol, args.fetch[0], args.fetch[1])
        result = pipeline.run(prices)
    except PipelineError as e:
        logger.error("Forecast run failed: %s", e)
        sys.exit(1)

    print(result.accuracy.round(4).to_string())
    print()
    print(result.forecast.round(2).to_string(index=False))
    for name, path in result.artifacts.items():
        logger.info("%s written to %s", name, path)


if __name__ == "__main__":
    main()
