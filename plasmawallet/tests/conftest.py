"""
Shared fixtures for plasmawallet tests.
"""

from unittest.mock import AsyncMock, MagicMock

import pytest

from plasmacore.constants import ETH_CURRENCY
from plasmacore.models import Utxo
from plasmawallet.backends.base import ChildChain, RootChain, TransactionReceipt
from plasmawallet.config import PlasmaConfig
from plasmawallet.providers.base import ProviderKind, SigningProvider
from plasmawallet.wallet.account import AccountBinder
from plasmawallet.wallet.models import Account

ALICE = "0x" + "a1" * 20
BOB = "0x" + "b2" * 20
TOKEN = "0x" + "c3" * 20
PLASMA_ADDRESS = "0x" + "d4" * 20


@pytest.fixture
def config() -> PlasmaConfig:
    return PlasmaConfig(plasma_address=PLASMA_ADDRESS, expected_network_id=1, _env_file=None)


@pytest.fixture
def provider() -> MagicMock:
    """In-page signing provider mock."""
    mock = MagicMock(spec=SigningProvider)
    mock.kind = ProviderKind.IN_PAGE
    mock.activate = AsyncMock()
    mock.send_rpc = AsyncMock()
    mock.get_accounts = AsyncMock(return_value=[ALICE])
    mock.get_network_id = AsyncMock(return_value=1)
    mock.close = AsyncMock()
    return mock


@pytest.fixture
def root_chain() -> MagicMock:
    mock = MagicMock(spec=RootChain)
    mock.get_past_events = AsyncMock(return_value=[])
    mock.get_token_metadata = AsyncMock(return_value=("TKN", "Token", 6))
    mock.get_block_number = AsyncMock(return_value=1000)
    mock.close = AsyncMock()
    return mock


@pytest.fixture
def child_chain() -> MagicMock:
    mock = MagicMock(spec=ChildChain)
    mock.close = AsyncMock()
    return mock


@pytest.fixture
def reloader() -> MagicMock:
    return MagicMock()


@pytest.fixture
def binder(config, provider, root_chain, reloader) -> AccountBinder:
    """Binder with an in-page provider and ALICE already bound."""
    binder = AccountBinder(
        config,
        in_page_factory=lambda: provider,
        root_chain_factory=lambda _: root_chain,
        reloader=reloader,
    )
    binder.provider = provider
    binder.account = Account(address=ALICE, network_id=1, provider_kind=ProviderKind.IN_PAGE)
    binder.root_chain = root_chain
    return binder


@pytest.fixture
def receipt() -> TransactionReceipt:
    return TransactionReceipt(
        transaction_hash="0x" + "99" * 32, block_number=1001, status=1, gas_used=21000
    )


def make_utxo(
    amount: int,
    currency: str = ETH_CURRENCY,
    blknum: int = 1000,
    txindex: int = 0,
    oindex: int = 0,
) -> Utxo:
    return Utxo(
        owner=ALICE,
        currency=currency,
        amount=amount,
        blknum=blknum,
        txindex=txindex,
        oindex=oindex,
    )
