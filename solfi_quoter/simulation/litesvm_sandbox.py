from __future__ import annotations

from pathlib import Path

from solders.account import Account
from solders.litesvm import LiteSVM
from solders.message import MessageV0
from solders.pubkey import Pubkey
from solders.transaction import VersionedTransaction
from solders.transaction_metadata import FailedTransactionMetadata

from .sandbox import SandboxFactory, SandboxRejection, SandboxSetupError, SandboxTransaction, token_amount


class LiteSvmSandbox:
    def __init__(self, svm: LiteSVM) -> None:
        self._svm = svm

    def load(self, address: Pubkey, account: Account) -> None:
        self._svm.set_account(address, account)

    def advance_to(self, slot: int) -> None:
        self._svm.warp_to_slot(slot)

    def fund(self, address: Pubkey, lamports: int) -> None:
        result = self._svm.airdrop(address, lamports)
        if isinstance(result, FailedTransactionMetadata):
            raise SandboxRejection(f"failed to airdrop: {result.err()}")

    def submit(self, transaction: SandboxTransaction) -> None:
        message = MessageV0.try_compile(
            transaction.payer.pubkey(),
            list(transaction.instructions),
            [],
            self._svm.latest_blockhash(),
        )
        signed = VersionedTransaction(message, [transaction.payer])
        result = self._svm.send_transaction(signed)
        if isinstance(result, FailedTransactionMetadata):
            raise SandboxRejection(str(result.err()))

    def read_balance(self, address: Pubkey) -> int:
        account = self._svm.get_account(address)
        if account is None:
            return 0
        return token_amount(bytes(account.data))


def litesvm_factory(*, program_id: str, program_path: str | Path) -> SandboxFactory:
    path = Path(program_path)
    program = Pubkey.from_string(program_id)

    def create() -> LiteSvmSandbox:
        if not path.is_file():
            raise SandboxSetupError(f"Venue program binary not found at {path}")
        svm = LiteSVM()
        try:
            svm.add_program_from_file(program, str(path))
        except Exception as error:
            raise SandboxSetupError(f"Failed to load venue program from {path}: {error}") from error
        return LiteSvmSandbox(svm)

    return create
