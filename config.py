import os
import json
import logging
from pathlib import Path
from dotenv import load_dotenv

load_dotenv()

def _coerce_bool(value):
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        return value.strip().lower() in {"1", "true", "yes", "on"}
    return bool(value)


# Output
REPORTS_DIR = os.getenv("REPORTS_DIR", "reports")

# Units: round-trip journals are denominated in SOL, prices quoted in USD
BASE_UNIT = os.getenv("BASE_UNIT", "SOL")
QUOTE_CURRENCY = os.getenv("QUOTE_CURRENCY", "USD")

# Statistics
VAR_CONFIDENCE = float(os.getenv("VAR_CONFIDENCE", "0.95"))
ZERO_FILL_DAYS = _coerce_bool(os.getenv("ZERO_FILL_DAYS", "false"))

# Position replay: 'timestamp' sorts before replay, 'input' keeps pasted order
REPLAY_ORDER = os.getenv("REPLAY_ORDER", "timestamp").lower()

# Normalizer
ROUND_TRIP_LEG_FEE = float(os.getenv("ROUND_TRIP_LEG_FEE", "0.01"))  # estimated fee per synthetic leg
MAX_REPORTED_ERRORS = int(os.getenv("MAX_REPORTED_ERRORS", "5"))

# Price feed
SOL_PRICE_FALLBACK_USD = float(os.getenv("SOL_PRICE_FALLBACK_USD", "1.0"))
PRICE_POLL_SEC = int(os.getenv("PRICE_POLL_SEC", "60"))
PRICE_FEED_URL = os.getenv("PRICE_FEED_URL", "https://min-api.cryptocompare.com/data/price?fsym=SOL&tsyms=USD")
PRICE_EXCHANGE_ID = os.getenv("PRICE_EXCHANGE_ID", "binance")
PRICE_SYMBOL = os.getenv("PRICE_SYMBOL", "SOL/USDT")
PRICE_TIMEOUT_SEC = float(os.getenv("PRICE_TIMEOUT_SEC", "10"))

# Logging
LOG_LEVEL_STR = os.getenv("LOG_LEVEL", "INFO").upper()
LOG_LEVEL = getattr(logging, LOG_LEVEL_STR, logging.INFO)

CONFIG_JSON_PATH = Path(os.getenv("JOURNAL_CONFIG_JSON", "config.json"))

if CONFIG_JSON_PATH.exists():
    try:
        _json_config = json.loads(CONFIG_JSON_PATH.read_text(encoding="utf-8"))
    except Exception as exc:
        raise RuntimeError(f"Failed to parse {CONFIG_JSON_PATH}: {exc}") from exc

    if 'reports_dir' in _json_config:
        REPORTS_DIR = str(_json_config['reports_dir'])
    if 'base_unit' in _json_config:
        BASE_UNIT = str(_json_config['base_unit'])
    if 'quote_currency' in _json_config:
        QUOTE_CURRENCY = str(_json_config['quote_currency'])
    if 'var_confidence' in _json_config:
        VAR_CONFIDENCE = float(_json_config['var_confidence'])
    if 'zero_fill_days' in _json_config:
        ZERO_FILL_DAYS = _coerce_bool(_json_config['zero_fill_days'])
    if 'replay_order' in _json_config:
        REPLAY_ORDER = str(_json_config['replay_order']).lower()
    if 'round_trip_leg_fee' in _json_config:
        ROUND_TRIP_LEG_FEE = float(_json_config['round_trip_leg_fee'])
    if 'max_reported_errors' in _json_config:
        MAX_REPORTED_ERRORS = int(_json_config['max_reported_errors'])
    if 'sol_price_fallback_usd' in _json_config:
        SOL_PRICE_FALLBACK_USD = float(_json_config['sol_price_fallback_usd'])
    if 'price' in _json_config:
        pf = _json_config['price'] or {}
        if 'poll_sec' in pf:
            PRICE_POLL_SEC = int(pf['poll_sec'])
        if 'feed_url' in pf:
            PRICE_FEED_URL = str(pf['feed_url'])
        if 'exchange_id' in pf:
            PRICE_EXCHANGE_ID = str(pf['exchange_id'])
        if 'symbol' in pf:
            PRICE_SYMBOL = str(pf['symbol'])
        if 'timeout_sec' in pf:
            PRICE_TIMEOUT_SEC = float(pf['timeout_sec'])
    if 'log_level' in _json_config:
        LOG_LEVEL_STR = str(_json_config['log_level']).upper()
        LOG_LEVEL = getattr(logging, LOG_LEVEL_STR, logging.INFO)

    del _json_config

if REPLAY_ORDER not in {"timestamp", "input"}:
    raise RuntimeError(f"REPLAY_ORDER must be 'timestamp' or 'input', got {REPLAY_ORDER!r}")
if not 0.0 < VAR_CONFIDENCE < 1.0:
    raise RuntimeError(f"VAR_CONFIDENCE must be in (0, 1), got {VAR_CONFIDENCE}")
