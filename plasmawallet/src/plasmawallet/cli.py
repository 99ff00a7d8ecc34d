"""
Plasma Wallet CLI - Move funds between the root chain and the plasma child chain.
"""

from __future__ import annotations

import asyncio
import sys
from collections.abc import Awaitable, Callable
from datetime import datetime
from typing import TypeVar

import httpx
import typer
from loguru import logger
from pydantic import ValidationError

from plasmacore.constants import ETH_CURRENCY
from plasmacore.models import TokenInfo
from plasmacore.transaction import TransactionBuildError
from plasmawallet.config import PlasmaConfig
from plasmawallet.errors import PlasmaWalletError
from plasmawallet.wallet.service import PlasmaService

app = typer.Typer(
    name="plasma-wallet",
    help="Plasma child chain wallet",
    add_completion=False,
)

T = TypeVar("T")


def setup_logging(level: str = "INFO") -> None:
    """Configure loguru logging."""
    logger.remove()
    logger.add(
        sys.stderr,
        level=level.upper(),
        format="<green>{time:HH:mm:ss}</green> | <level>{level: <8}</level> | {message}",
    )


def _load_config(plasma_address: str | None) -> PlasmaConfig:
    overrides = {"plasma_address": plasma_address} if plasma_address else {}
    try:
        return PlasmaConfig(**overrides)
    except ValidationError as e:
        logger.error(f"Invalid configuration: {e}")
        raise typer.Exit(1)


def _run(
    plasma_address: str | None,
    remote_session: bool,
    body: Callable[[PlasmaService], Awaitable[T]],
    require_account: bool = True,
    bind: bool = True,
) -> T:
    config = _load_config(plasma_address)
    return asyncio.run(_with_service(config, remote_session, body, require_account, bind))


async def _with_service(
    config: PlasmaConfig,
    remote_session: bool,
    body: Callable[[PlasmaService], Awaitable[T]],
    require_account: bool,
    bind: bool,
) -> T:
    service = PlasmaService(config)
    try:
        bound = False
        if bind and remote_session:
            bound = await service.bind_remote_session_provider()
        elif bind:
            bound = await service.bind_in_page_provider()

        if require_account:
            if not bound:
                logger.error("No signing provider available")
                raise typer.Exit(1)
            if not await service.initialize_account():
                logger.error("Failed to initialize account")
                raise typer.Exit(1)

        return await body(service)
    except (PlasmaWalletError, TransactionBuildError, httpx.HTTPError) as e:
        logger.error(str(e))
        raise typer.Exit(1)
    finally:
        await service.close()


async def _gas_price(service: PlasmaService, gas_price: int | None) -> int:
    if gas_price is not None:
        return gas_price
    return (await service.get_gas_price()).normal


def format_amount(amount: int, token: TokenInfo | None) -> str:
    if token is None:
        return f"{amount}"
    whole, fraction = divmod(amount, 10**token.decimals)
    if not token.decimals:
        return f"{whole:,} {token.symbol}"
    return f"{whole:,}.{fraction:0{token.decimals}d} {token.symbol}"


PlasmaAddressOption = typer.Option(
    None, "--plasma-address", envvar="PLASMA_PLASMA_ADDRESS", help="Plasma framework contract"
)
RemoteSessionOption = typer.Option(
    False, "--remote-session", help="Sign through a remote session instead of a local wallet"
)
GasPriceOption = typer.Option(None, "--gas-price", help="Gas price in wei (default: normal estimate)")
LogLevelOption = typer.Option("INFO", "--log-level", "-l")


@app.command()
def status(
    plasma_address: str | None = PlasmaAddressOption,
    log_level: str = LogLevelOption,
) -> None:
    """Show the watcher's view of the child chain."""
    setup_logging(log_level)

    async def body(service: PlasmaService) -> None:
        chain_status = await service.check_status()
        print(f"\nConnected:        {chain_status.connection}")
        print(f"Byzantine:        {chain_status.byzantine}")
        print(f"Last seen block:  {chain_status.last_seen_block}")
        print(f"Since last sync:  {chain_status.seconds_since_last_sync}s")

    _run(plasma_address, False, body, require_account=False, bind=False)


@app.command()
def balances(
    plasma_address: str | None = PlasmaAddressOption,
    remote_session: bool = RemoteSessionOption,
    log_level: str = LogLevelOption,
) -> None:
    """Show root chain and child chain balances."""
    setup_logging(log_level)

    async def body(service: PlasmaService) -> None:
        result = await service.get_balances()
        print("\nRoot chain:")
        for balance in result.rootchain:
            print(f"  {balance.currency}  {format_amount(balance.amount, balance.token)}")
        print("\nChild chain:")
        for balance in result.childchain:
            print(f"  {balance.currency}  {format_amount(balance.amount, balance.token)}")

    _run(plasma_address, remote_session, body)


@app.command()
def utxos(
    plasma_address: str | None = PlasmaAddressOption,
    remote_session: bool = RemoteSessionOption,
    log_level: str = LogLevelOption,
) -> None:
    """List the account's child chain UTXOs."""
    setup_logging(log_level)

    async def body(service: PlasmaService) -> None:
        items = await service.get_utxos()
        if not items:
            print("\nNo UTXOs found.")
            return
        print(f"\nFound {len(items)} UTXO(s):\n")
        for item in items:
            print(f"  {item.utxo.utxo_pos:>20}  {format_amount(item.utxo.amount, item.token)}")

    _run(plasma_address, remote_session, body)


@app.command()
def transactions(
    plasma_address: str | None = PlasmaAddressOption,
    remote_session: bool = RemoteSessionOption,
    log_level: str = LogLevelOption,
) -> None:
    """List the account's child chain transactions."""
    setup_logging(log_level)

    async def body(service: PlasmaService) -> None:
        for tx in await service.get_all_transactions():
            print(f"  {tx.txhash}  {tx.metadata}")

    _run(plasma_address, remote_session, body)


@app.command()
def deposits(
    plasma_address: str | None = PlasmaAddressOption,
    remote_session: bool = RemoteSessionOption,
    log_level: str = LogLevelOption,
) -> None:
    """List deposits with their confirmation status."""
    setup_logging(log_level)

    async def body(service: PlasmaService) -> None:
        result = await service.get_deposits()
        for record in [*result.eth, *result.erc20]:
            print(
                f"  {record.transaction_hash}  "
                f"{format_amount(record.amount, record.token_info):>24}  "
                f"{record.status.value} ({record.pending_percentage}%)"
            )

    _run(plasma_address, remote_session, body)


@app.command()
def exits(
    plasma_address: str | None = PlasmaAddressOption,
    remote_session: bool = RemoteSessionOption,
    log_level: str = LogLevelOption,
) -> None:
    """List pending and finalized exits."""
    setup_logging(log_level)

    async def body(service: PlasmaService) -> None:
        result = await service.get_exits()
        print("\nPending:")
        for record in result.pending:
            print(
                f"  {record.exit_id}  {record.transaction_hash}  "
                f"{record.status.value} ({record.pending_percentage}%)"
            )
        print("\nExited:")
        for record in result.exited:
            print(f"  {record.exit_id}  {record.transaction_hash}")

    _run(plasma_address, remote_session, body)


@app.command("gas-price")
def gas_price(
    plasma_address: str | None = PlasmaAddressOption,
    remote_session: bool = RemoteSessionOption,
    log_level: str = LogLevelOption,
) -> None:
    """Show slow, normal and fast gas price estimates."""
    setup_logging(log_level)

    async def body(service: PlasmaService) -> None:
        estimate = await service.get_gas_price()
        print(f"\nSlow:    {estimate.slow / 1e9:.2f} gwei")
        print(f"Normal:  {estimate.normal / 1e9:.2f} gwei")
        print(f"Fast:    {estimate.fast / 1e9:.2f} gwei")

    _run(plasma_address, remote_session, body, require_account=False)


@app.command()
def transfer(
    recipient: str = typer.Argument(..., help="Recipient address"),
    amount: int = typer.Argument(..., help="Amount in the token's base unit"),
    currency: str = typer.Option(ETH_CURRENCY, "--currency", "-c"),
    fee_currency: str = typer.Option(ETH_CURRENCY, "--fee-currency"),
    metadata: str | None = typer.Option(None, "--metadata", "-m"),
    plasma_address: str | None = PlasmaAddressOption,
    remote_session: bool = RemoteSessionOption,
    log_level: str = LogLevelOption,
) -> None:
    """Send a payment on the child chain."""
    setup_logging(log_level)

    async def body(service: PlasmaService) -> None:
        tx = await service.transfer(recipient, amount, currency, fee_currency, metadata)
        print(f"\nSubmitted {tx.txhash} in block {tx.blknum} ({tx.status.value})")

    _run(plasma_address, remote_session, body)


@app.command()
def merge(
    positions: list[int] = typer.Argument(..., help="UTXO positions to merge"),
    plasma_address: str | None = PlasmaAddressOption,
    remote_session: bool = RemoteSessionOption,
    log_level: str = LogLevelOption,
) -> None:
    """Merge UTXOs of one currency into a single output."""
    setup_logging(log_level)

    async def body(service: PlasmaService) -> None:
        owned = {item.utxo.utxo_pos: item.utxo for item in await service.get_utxos()}
        missing = [pos for pos in positions if pos not in owned]
        if missing:
            logger.error(f"UTXOs not owned by this account: {missing}")
            raise typer.Exit(1)

        tx = await service.merge_utxos([owned[pos] for pos in positions])
        print(f"\nSubmitted {tx.txhash} in block {tx.blknum} ({tx.status.value})")

    _run(plasma_address, remote_session, body)


@app.command("exit-utxo")
def exit_utxo(
    position: int = typer.Argument(..., help="UTXO position to exit"),
    gas_price: int | None = GasPriceOption,
    plasma_address: str | None = PlasmaAddressOption,
    remote_session: bool = RemoteSessionOption,
    log_level: str = LogLevelOption,
) -> None:
    """Start a standard exit for a UTXO."""
    setup_logging(log_level)

    async def body(service: PlasmaService) -> None:
        owned = {item.utxo.utxo_pos: item.utxo for item in await service.get_utxos()}
        if position not in owned:
            logger.error(f"UTXO {position} not owned by this account")
            raise typer.Exit(1)

        receipt = await service.exit_utxo(owned[position], await _gas_price(service, gas_price))
        print(f"\nExit started: {receipt.transaction_hash} (block {receipt.block_number})")

    _run(plasma_address, remote_session, body)


@app.command("exit-queue")
def exit_queue(
    currency: str = typer.Argument(ETH_CURRENCY, help="Token address"),
    plasma_address: str | None = PlasmaAddressOption,
    remote_session: bool = RemoteSessionOption,
    log_level: str = LogLevelOption,
) -> None:
    """Show the exit queue for a token."""
    setup_logging(log_level)

    async def body(service: PlasmaService) -> None:
        queue = await service.get_exit_queue(currency)
        if not queue.queue:
            print(f"\nExit queue for {queue.currency} is empty.")
            return
        print(f"\nExit queue for {queue.currency}:\n")
        for entry in queue.queue:
            exitable_at = datetime.fromtimestamp(entry.exitable_at)
            print(f"  {entry.exit_id}  exitable at {exitable_at.strftime('%Y-%m-%d %H:%M:%S')}")

    _run(plasma_address, remote_session, body)


@app.command("add-exit-queue")
def add_exit_queue(
    token: str = typer.Argument(..., help="Token address"),
    gas_price: int | None = GasPriceOption,
    plasma_address: str | None = PlasmaAddressOption,
    remote_session: bool = RemoteSessionOption,
    log_level: str = LogLevelOption,
) -> None:
    """Register an exit queue for a token."""
    setup_logging(log_level)

    async def body(service: PlasmaService) -> None:
        if await service.has_exit_queue(token):
            print(f"\nExit queue for {token} already exists.")
            return
        receipt = await service.add_exit_queue(token, await _gas_price(service, gas_price))
        print(f"\nExit queue added: {receipt.transaction_hash}")

    _run(plasma_address, remote_session, body)


@app.command("process-exits")
def process_exits(
    currency: str = typer.Argument(ETH_CURRENCY, help="Token address"),
    max_exits: int = typer.Option(1, "--max-exits", "-n", min=1),
    gas_price: int | None = GasPriceOption,
    plasma_address: str | None = PlasmaAddressOption,
    remote_session: bool = RemoteSessionOption,
    log_level: str = LogLevelOption,
) -> None:
    """Process exits that have passed their challenge period."""
    setup_logging(log_level)

    async def body(service: PlasmaService) -> None:
        receipt = await service.process_exits(
            max_exits, currency, await _gas_price(service, gas_price)
        )
        print(f"\nProcessed exits: {receipt.transaction_hash}")

    _run(plasma_address, remote_session, body)


@app.command()
def deposit(
    amount: int = typer.Argument(..., help="Amount in the token's base unit"),
    currency: str = typer.Option(ETH_CURRENCY, "--currency", "-c"),
    gas_price: int | None = GasPriceOption,
    plasma_address: str | None = PlasmaAddressOption,
    remote_session: bool = RemoteSessionOption,
    log_level: str = LogLevelOption,
) -> None:
    """Deposit ETH or an ERC20 token into the child chain."""
    setup_logging(log_level)

    async def body(service: PlasmaService) -> None:
        price = await _gas_price(service, gas_price)
        if currency.lower() == ETH_CURRENCY:
            receipt = await service.deposit_eth(amount, price)
        else:
            receipt = await service.deposit_erc20(amount, currency, price)
        print(f"\nDeposit sent: {receipt.transaction_hash} (block {receipt.block_number})")

    _run(plasma_address, remote_session, body)


@app.command()
def approve(
    amount: int = typer.Argument(..., help="Allowance in the token's base unit"),
    currency: str = typer.Argument(..., help="Token address"),
    reset: bool = typer.Option(False, "--reset", help="Set the allowance to zero first"),
    gas_price: int | None = GasPriceOption,
    plasma_address: str | None = PlasmaAddressOption,
    remote_session: bool = RemoteSessionOption,
    log_level: str = LogLevelOption,
) -> None:
    """Approve the ERC20 vault to take deposits of a token."""
    setup_logging(log_level)

    async def body(service: PlasmaService) -> None:
        price = await _gas_price(service, gas_price)
        if reset:
            receipt = await service.reset_approval(amount, currency, price)
        else:
            receipt = await service.approve_erc20(amount, currency, price)
        print(f"\nApproval sent: {receipt.transaction_hash}")

    _run(plasma_address, remote_session, body)


@app.command()
def allowance(
    currency: str = typer.Argument(..., help="Token address"),
    plasma_address: str | None = PlasmaAddressOption,
    remote_session: bool = RemoteSessionOption,
    log_level: str = LogLevelOption,
) -> None:
    """Show the ERC20 vault allowance for a token."""
    setup_logging(log_level)

    async def body(service: PlasmaService) -> None:
        print(f"\nAllowance: {await service.check_allowance(currency)}")

    _run(plasma_address, remote_session, body)


def main() -> None:
    """CLI entry point."""
    app()


if __name__ == "__main__":
    main()
