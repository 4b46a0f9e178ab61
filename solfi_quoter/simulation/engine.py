from __future__ import annotations

import hashlib
import logging
from collections.abc import Sequence

from solders.instruction import Instruction
from solders.keypair import Keypair
from solders.pubkey import Pubkey
from solders.system_program import TransferParams, transfer
from spl.token.constants import TOKEN_PROGRAM_ID
from spl.token.instructions import (
    create_idempotent_associated_token_account,
    get_associated_token_address,
    sync_native,
)
from spl.token.models import SyncNativeParams

from solfi_quoter.common import log_event
from solfi_quoter.storage import Snapshot, SnapshotStore, load_snapshot
from solfi_quoter.swap import (
    DEFAULT_PAIR,
    LAMPORTS_PER_SOL,
    PairConfig,
    SwapDirection,
    TokenSide,
    VenueQuote,
    build_swap_instruction,
)

from .sandbox import (
    ExecutionSandbox,
    SandboxFactory,
    SandboxRejection,
    SandboxSetupError,
    SandboxTransaction,
    funded_token_account,
)

DEFAULT_SWAP_AMOUNT = 10.0

# A fixed payer keeps repeated runs over one snapshot bit-identical.
_PAYER_SEED = hashlib.sha256(b"solfi-quoter/simulation-payer").digest()


def default_payer() -> Keypair:
    return Keypair.from_seed(_PAYER_SEED)


class QuoteEngine:
    """Replays one synthetic swap per venue against a freshly seeded sandbox.

    Every call builds its own sandbox from the snapshot store, so calls share
    no simulation state and may run on different threads. Inside a call the
    venues are replayed one after another and each venue is credited only
    with the balance change of the payer's output token account around its
    own transaction.
    """

    def __init__(
        self,
        *,
        logger: logging.Logger,
        store: SnapshotStore,
        sandbox_factory: SandboxFactory,
        pair: PairConfig = DEFAULT_PAIR,
        funding_margin_lamports: int = LAMPORTS_PER_SOL,
        payer: Keypair | None = None,
    ) -> None:
        self._logger = logger
        self._store = store
        self._sandbox_factory = sandbox_factory
        self.pair = pair
        self._funding_margin_lamports = max(0, int(funding_margin_lamports))
        self._payer = payer or default_payer()
        self._program_id = Pubkey.from_string(pair.program_id)
        self._base_mint = Pubkey.from_string(pair.base_mint)
        self._quote_mint = Pubkey.from_string(pair.quote_mint)

    def simulate(
        self,
        direction: SwapDirection,
        amount: float | None = None,
        *,
        slot: int | None = None,
        ignore_errors: bool = False,
        venues: Sequence[str] | None = None,
    ) -> list[VenueQuote]:
        amount_in = DEFAULT_SWAP_AMOUNT if amount is None else float(amount)
        input_side = self.pair.input_side(direction)
        output_side = self.pair.output_side(direction)
        atomic_in = input_side.to_atomic(amount_in)
        markets = tuple(venues) if venues is not None else self.pair.markets

        sandbox = self._sandbox_factory()
        snapshot = load_snapshot(self._store)
        anchor_slot = self._seed(sandbox, snapshot, slot)

        user = self._payer.pubkey()
        input_ata = get_associated_token_address(user, Pubkey.from_string(input_side.mint))
        output_ata = get_associated_token_address(user, Pubkey.from_string(output_side.mint))
        self._fund(
            sandbox,
            input_side=input_side,
            user=user,
            input_ata=input_ata,
            total_atomic=atomic_in * len(markets),
        )

        quotes: list[VenueQuote] = []
        for market in markets:
            quote = self._replay(
                sandbox,
                direction=direction,
                market=market,
                amount_in=amount_in,
                atomic_in=atomic_in,
                input_side=input_side,
                output_side=output_side,
                input_ata=input_ata,
                output_ata=output_ata,
                ignore_errors=ignore_errors,
            )
            if quote is not None:
                quotes.append(quote)

        log_event(
            self._logger,
            level="debug",
            event="simulation_completed",
            message="Swap replay finished",
            direction=str(direction),
            amount_in=amount_in,
            slot=anchor_slot,
            venues=len(markets),
            succeeded=sum(1 for quote in quotes if quote.succeeded),
        )
        return quotes

    def _seed(self, sandbox: ExecutionSandbox, snapshot: Snapshot, slot: int | None) -> int | None:
        for record in snapshot.accounts:
            sandbox.load(Pubkey.from_string(record.address), record.to_account())

        anchor_slot = slot
        if anchor_slot is None and snapshot.freshness is not None:
            anchor_slot = snapshot.freshness.anchor_slot
        if anchor_slot is not None:
            sandbox.advance_to(anchor_slot)
        return anchor_slot

    def _fund(
        self,
        sandbox: ExecutionSandbox,
        *,
        input_side: TokenSide,
        user: Pubkey,
        input_ata: Pubkey,
        total_atomic: int,
    ) -> None:
        try:
            if input_side.is_native:
                sandbox.fund(user, total_atomic + self._funding_margin_lamports)
                return

            # Tokens cannot be airdropped, so the payer's input account is
            # written into the sandbox already holding the whole budget.
            sandbox.fund(user, self._funding_margin_lamports)
            sandbox.load(
                input_ata,
                funded_token_account(
                    mint=Pubkey.from_string(input_side.mint),
                    owner=user,
                    amount=total_atomic,
                ),
            )
        except SandboxRejection as rejection:
            raise SandboxSetupError(f"Failed to fund simulation payer: {rejection.reason}") from rejection

    def _swap_instructions(
        self,
        *,
        direction: SwapDirection,
        market: Pubkey,
        user: Pubkey,
        atomic_in: int,
        input_side: TokenSide,
        input_ata: Pubkey,
    ) -> list[Instruction]:
        instructions = [
            create_idempotent_associated_token_account(user, user, self._base_mint, TOKEN_PROGRAM_ID),
            create_idempotent_associated_token_account(user, user, self._quote_mint, TOKEN_PROGRAM_ID),
        ]
        if input_side.is_native:
            instructions.append(transfer(TransferParams(from_pubkey=user, to_pubkey=input_ata, lamports=atomic_in)))
            instructions.append(sync_native(SyncNativeParams(program_id=TOKEN_PROGRAM_ID, account=input_ata)))
        instructions.append(
            build_swap_instruction(
                program_id=self._program_id,
                direction=direction,
                market=market,
                user=user,
                token_a=self._base_mint,
                token_b=self._quote_mint,
                amount_in=atomic_in,
            )
        )
        return instructions

    def _replay(
        self,
        sandbox: ExecutionSandbox,
        *,
        direction: SwapDirection,
        market: str,
        amount_in: float,
        atomic_in: int,
        input_side: TokenSide,
        output_side: TokenSide,
        input_ata: Pubkey,
        output_ata: Pubkey,
        ignore_errors: bool,
    ) -> VenueQuote | None:
        user = self._payer.pubkey()
        instructions = self._swap_instructions(
            direction=direction,
            market=Pubkey.from_string(market),
            user=user,
            atomic_in=atomic_in,
            input_side=input_side,
            input_ata=input_ata,
        )

        before = sandbox.read_balance(output_ata)
        try:
            sandbox.submit(SandboxTransaction(payer=self._payer, instructions=tuple(instructions)))
        except SandboxRejection as rejection:
            log_event(
                self._logger,
                level="debug",
                event="simulation_rejected",
                message="Sandbox rejected venue swap",
                venue=market,
                direction=str(direction),
                error=rejection.reason,
            )
            if ignore_errors:
                return None
            return VenueQuote(venue=market, amount_in=amount_in, error=rejection.reason)

        after = sandbox.read_balance(output_ata)
        return VenueQuote(
            venue=market,
            amount_in=amount_in,
            amount_out=output_side.from_atomic(after - before),
        )
