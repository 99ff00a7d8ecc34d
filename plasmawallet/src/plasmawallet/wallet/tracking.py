"""
Deposit and exit tracking.

Both trackers read historical root chain events for the bound account and
derive a confirmation based status against a current root chain height
that the caller supplies. Event queries that fail are logged and read as
empty, so one slow contract never hides the results of another.
"""

from __future__ import annotations

import asyncio
from typing import Any

from loguru import logger

from plasmacore.constants import DEPOSIT_FINALITY, ETH_CURRENCY, EXIT_FINALITY
from plasmacore.finality import finality_status, pending_percentage
from plasmacore.models import TokenInfo, TxStatus
from plasmawallet.backends.base import EventLog, EventSource
from plasmawallet.wallet.account import AccountBinder
from plasmawallet.wallet.models import DepositRecord, Deposits, ExitRecord, Exits
from plasmawallet.wallet.tokens import TokenResolver


async def _past_events(
    binder: AccountBinder,
    source: EventSource,
    event_name: str,
    argument_filters: dict[str, Any],
) -> list[EventLog]:
    try:
        return await binder.require_root_chain().get_past_events(
            source, event_name, argument_filters, from_block=0
        )
    except Exception as e:
        logger.warning(f"Getting past {source.value} {event_name} events failed: {e}")
        return []


class DepositTracker:
    def __init__(
        self,
        binder: AccountBinder,
        tokens: TokenResolver,
        finality: int = DEPOSIT_FINALITY,
    ):
        self.binder = binder
        self.tokens = tokens
        self.finality = finality

    async def get_deposits(self, current_block: int) -> Deposits:
        account = self.binder.require_account()
        filters = {"depositor": account.address}

        eth_events, erc20_events = await asyncio.gather(
            _past_events(self.binder, EventSource.ETH_VAULT, "DepositCreated", filters),
            _past_events(self.binder, EventSource.ERC20_VAULT, "DepositCreated", filters),
        )
        tokens = await self.tokens.get_tokens(
            str(event.args.get("token", ETH_CURRENCY)) for event in [*eth_events, *erc20_events]
        )

        deposits = Deposits(
            eth=[self._record(event, current_block, tokens) for event in eth_events],
            erc20=[self._record(event, current_block, tokens) for event in erc20_events],
        )
        logger.debug(
            f"Found {len(deposits.eth)} ETH and {len(deposits.erc20)} ERC20 deposits "
            f"at root chain block {current_block}"
        )
        return deposits

    def _record(
        self, event: EventLog, current_block: int, tokens: dict[str, TokenInfo]
    ) -> DepositRecord:
        token = str(event.args.get("token", ETH_CURRENCY)).lower()
        return DepositRecord(
            depositor=str(event.args.get("depositor", "")),
            token=token,
            amount=int(event.args.get("amount", 0)),
            blknum=int(event.args.get("blknum", 0)),
            block_number=event.block_number,
            transaction_hash=event.transaction_hash,
            status=finality_status(current_block, event.block_number, self.finality),
            pending_percentage=pending_percentage(current_block, event.block_number, self.finality),
            token_info=tokens.get(token),
        )


class ExitTracker:
    def __init__(self, binder: AccountBinder, finality: int = EXIT_FINALITY):
        self.binder = binder
        self.finality = finality

    async def get_exits(self, current_block: int) -> Exits:
        """
        Split the account's exits into pending and exited.

        An exit is exited when an ExitFinalized event exists for its exit id.
        The others get a status from their confirmations.
        """
        account = self.binder.require_account()

        started = await _past_events(
            self.binder, EventSource.PAYMENT_EXIT_GAME, "ExitStarted", {"owner": account.address}
        )
        finalized = await asyncio.gather(*(self._is_finalized(event) for event in started))
        exited_ids = {
            _exit_id(event) for event, is_final in zip(started, finalized, strict=True) if is_final
        }

        exits = Exits()
        for event in started:
            exit_id = _exit_id(event)
            if exit_id in exited_ids:
                exits.exited.append(
                    ExitRecord(
                        owner=str(event.args.get("owner", account.address)),
                        exit_id=exit_id,
                        block_number=event.block_number,
                        transaction_hash=event.transaction_hash,
                        status=TxStatus.EXITED,
                    )
                )
            else:
                exits.pending.append(
                    ExitRecord(
                        owner=str(event.args.get("owner", account.address)),
                        exit_id=exit_id,
                        block_number=event.block_number,
                        transaction_hash=event.transaction_hash,
                        status=finality_status(current_block, event.block_number, self.finality),
                        pending_percentage=pending_percentage(
                            current_block, event.block_number, self.finality
                        ),
                    )
                )

        logger.debug(f"Found {len(exits.pending)} pending and {len(exits.exited)} exited exits")
        return exits

    async def _is_finalized(self, event: EventLog) -> bool:
        finalized = await _past_events(
            self.binder,
            EventSource.PAYMENT_EXIT_GAME,
            "ExitFinalized",
            {"exitId": _exit_id(event)},
        )
        return bool(finalized)


def _exit_id(event: EventLog) -> int:
    return int(event.args.get("exitId", 0))
