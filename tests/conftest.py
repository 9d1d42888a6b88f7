"""Root conftest — shared test configuration."""

import os

# Ensure tests never talk to a real node or wallet
os.environ.setdefault("MARKET_LEDGER_RPC_URL", "http://ledger.test")
os.environ.setdefault("MARKET_SIGNER_RPC_URL", "")
os.environ.setdefault("MARKET_LOG_FORMAT", "text")
