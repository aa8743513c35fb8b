"""Load historical daily OHLCV records for a single equity."""

import logging
import time
from pathlib import Path
from typing import Optional, Union

import pandas as pd
import yfinance as yf

from ..exceptions import DataLoadError
from ..utils.config import RAW_DATA_DIR
from ..utils.helpers import validate_dataframe

logger = logging.getLogger(__name__)

PRICE_COLUMNS = ['date', 'symbol', 'open', 'high', 'low', 'close', 'volume']


class PriceLoader:
    """Read, normalize and filter OHLCV tables."""

    def __init__(self, cache_dir: Optional[Path] = None):
        self.cache_dir = cache_dir or RAW_DATA_DIR / "prices"

    def load(self, path: Union[str, Path], symbol: Optional[str] = None,
             start_date: Optional[str] = None, sep: Optional[str] = None) -> pd.DataFrame:
        """
        Load a delimited price table.

        Args:
            path: CSV/TSV file with date, symbol, open, high, low, close, volume
                columns (names are matched case-insensitively)
            symbol: Keep only rows for this symbol
            start_date: Keep only rows on or after this date (YYYY-MM-DD)
            sep: Field delimiter; tab for .tsv/.tab files, comma otherwise

        Returns:
            DataFrame with columns: date, symbol, open, high, low, close, volume
        """
        path = Path(path)
        if not path.exists():
            raise DataLoadError(f"Price file not found: {path}", stage="load")

        if sep is None:
            sep = "\t" if path.suffix.lower() in (".tsv", ".tab") else ","

        try:
            raw = pd.read_csv(path, sep=sep)
        except (pd.errors.ParserError, pd.errors.EmptyDataError, UnicodeDecodeError) as e:
            raise DataLoadError(f"Could not parse {path}: {e}", stage="load") from e

        logger.info("Read %d rows from %s", len(raw), path)
        return self.prepare(raw, symbol=symbol, start_date=start_date)

    def prepare(self, raw: pd.DataFrame, symbol: Optional[str] = None,
                start_date: Optional[str] = None) -> pd.DataFrame:
        """Normalize column names, types and ordering of an in-memory table."""
        df = raw.copy()
        df.columns = [str(col).strip().lower() for col in df.columns]
        validate_dataframe(df, PRICE_COLUMNS, check_nulls=False)
        df = df[PRICE_COLUMNS].copy()

        try:
            dates = pd.to_datetime(df['date'])
        except (ValueError, TypeError) as e:
            raise DataLoadError(f"Malformed date column: {e}", stage="load") from e
        if dates.dt.tz is not None:
            dates = dates.dt.tz_localize(None)
        df['date'] = dates.dt.normalize()

        for col in ['open', 'high', 'low', 'close', 'volume']:
            converted = pd.to_numeric(df[col], errors='coerce')
            bad = converted.isna() & df[col].notna()
            if bad.any():
                bad_rows = df.index[bad]
                raise DataLoadError(
                    f"Non-numeric values in column '{col}'",
                    stage="load", rows=(bad_rows.min(), bad_rows.max()),
                )
            df[col] = converted
        df['symbol'] = df['symbol'].astype(str)

        if symbol is not None:
            df = df[df['symbol'].str.upper() == symbol.upper()]
            if df.empty:
                raise DataLoadError(f"No rows for symbol {symbol}", stage="load")

        if start_date is not None:
            df = df[df['date'] >= pd.Timestamp(start_date)]
            if df.empty:
                raise DataLoadError(f"No rows on or after {start_date}", stage="load")

        df = df.sort_values('date')

        # One record per trading day
        duplicated = df.duplicated(subset=['symbol', 'date'], keep='first')
        if duplicated.any():
            logger.warning("Dropping %d duplicate date rows", int(duplicated.sum()))
            df = df[~duplicated]

        if symbol is None and df['symbol'].nunique() > 1:
            logger.warning("Table holds %d symbols; pass symbol= to select one",
                           df['symbol'].nunique())

        df = df.reset_index(drop=True)
        logger.info("Prepared %d price rows from %s to %s",
                    len(df), df['date'].min().date(), df['date'].max().date())
        return df

    def fetch(self, ticker: str, start_date: str, end_date: str,
              use_cache: bool = True) -> pd.DataFrame:
        """
        Download daily prices with yfinance, cached as CSV in the loader schema.

        Args:
            ticker: Stock symbol (e.g., 'AAPL')
            start_date: Start date (YYYY-MM-DD)
            end_date: End date (YYYY-MM-DD)
            use_cache: Whether to use cached data if available
        """
        self.cache_dir.mkdir(parents=True, exist_ok=True)
        cache_file = self.cache_dir / f"{ticker}_{start_date}_{end_date}.csv"

        if use_cache and cache_file.exists():
            logger.info("Loading cached data for %s", ticker)
            return self.load(cache_file, symbol=ticker)

        logger.info("Fetching price data for %s from %s to %s", ticker, start_date, end_date)
        ticker_obj = yf.Ticker(ticker)
        history = ticker_obj.history(start=start_date, end=end_date, auto_adjust=True)

        if history.empty:
            raise DataLoadError(f"No data returned for {ticker}", stage="fetch")

        df = history.reset_index()
        df = df[['Date', 'Open', 'High', 'Low', 'Close', 'Volume']].copy()
        df.columns = ['date', 'open', 'high', 'low', 'close', 'volume']
        df.insert(1, 'symbol', ticker)
        df = self.prepare(df, symbol=ticker)

        df.to_csv(cache_file, index=False)
        logger.info("Fetched %d days of data for %s", len(df), ticker)

        # Rate limiting
        time.sleep(0.5)

        return df
