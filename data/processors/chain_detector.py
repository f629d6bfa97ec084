"""
Chain Detector - maps provider platform listings to supported chain ids
"""

import re
from typing import Dict, Mapping, Optional

from loguru import logger

from utils.constants import (
    EVM_ADDRESS_PATTERN, EVM_CHAINS, NATIVE_COINS, PLATFORM_CHAIN_MAP, SOLANA_ADDRESS_PATTERN,
)

_EVM_RE = re.compile(EVM_ADDRESS_PATTERN)
_SOLANA_RE = re.compile(SOLANA_ADDRESS_PATTERN)


def is_valid_address(chain: str, address: Optional[str]) -> bool:
    if not address:
        return False
    if chain in EVM_CHAINS:
        return bool(_EVM_RE.match(address))
    if chain == "solana":
        return bool(_SOLANA_RE.match(address))
    return False


def detect_chains(platforms: Optional[Mapping[str, str]]) -> Dict[str, str]:
    """
    Supported deployments of a token as {chain: contract_address}.

    Chains come back in priority order (PLATFORM_CHAIN_MAP order), so the
    first entry is the primary chain. Unknown platforms are ignored and
    malformed addresses are dropped.
    """
    if not platforms:
        return {}

    detected: Dict[str, str] = {}
    for platform, chain in PLATFORM_CHAIN_MAP.items():
        address = (platforms.get(platform) or "").strip()
        if not address:
            continue
        if not is_valid_address(chain, address):
            logger.warning(f"Dropping invalid {chain} address {address!r}")
            continue
        detected[chain] = address

    if detected:
        logger.debug(f"Detected chains: {list(detected)}")
    return detected


def is_native_coin(ticker: str) -> bool:
    """Layer-1 coins that have no token contract to inspect"""
    return ticker.upper() in NATIVE_COINS
