"""
PickupConfirmationService -- proof of possession for pickups.

Responsibility:
    Issues one-time codes and records confirmations (by code or by
    signature) that gate completion of PICKUP transactions.

Architecture position:
    Services -- imperative shell.  Writes only the PickupConfirmation
    sub-record; TransactionService.complete() reads it.

Invariants enforced:
    - Codes are only issued for PICKUP transactions that are OPEN or
      IN_TRANSIT and not yet confirmed.
    - At most one active code per transaction: re-issuing overwrites the
      stored code, which invalidates the previous one.
    - Codes are uniformly random (``secrets``), fixed width, leading zeros
      kept, and expire ``code_ttl`` after issuance.
    - A successful code confirmation consumes the code.
    - Confirmation is a one-way latch.  The same picker confirming again
      gets the stored record back with no mutation; a different picker gets
      ConfirmationConflictError.

Failure modes:
    - ValidationError: not a pickup, blank picker, missing signature artifact.
    - TransactionNotActiveError: pickup is COMPLETED or CANCELLED.
    - AlreadyConfirmedError: code requested for a confirmed pickup.
    - NoActiveCodeError / ExpiredCodeError / CodeMismatchError: bad code.
    - ConfirmationConflictError: a different picker re-confirms.
"""

import hmac
import secrets
from collections.abc import Callable
from datetime import timedelta
from uuid import UUID

from sqlalchemy.orm import Session

from stock_ledger.domain.clock import Clock
from stock_ledger.domain.dtos import IssuedCode, PickupConfirmationInfo
from stock_ledger.domain.transaction import (
    ACTIVE_STATUSES,
    ConfirmationMethod,
    TransactionStatus,
    TransactionType,
)
from stock_ledger.exceptions import (
    AlreadyConfirmedError,
    CodeMismatchError,
    ConfirmationConflictError,
    ExpiredCodeError,
    NoActiveCodeError,
    TransactionNotActiveError,
    ValidationError,
)
from stock_ledger.logging_config import LogContext, get_logger
from stock_ledger.models.transaction import InventoryTransaction, PickupConfirmation
from stock_ledger.selectors.transaction_selector import confirmation_to_info
from stock_ledger.services.base import BaseService
from stock_ledger.services.signature_store import SignatureStore
from stock_ledger.services.transaction_service import TransactionService

logger = get_logger("services.confirmation")

DEFAULT_CODE_TTL = timedelta(minutes=15)
DEFAULT_CODE_DIGITS = 6


def generate_numeric_code(digits: int = DEFAULT_CODE_DIGITS) -> str:
    """Uniformly random numeric code of exactly ``digits`` characters."""
    return f"{secrets.randbelow(10 ** digits):0{digits}d}"


class PickupConfirmationService(BaseService[PickupConfirmation]):
    """
    Service for issuing and validating pickup proofs.

    Non-goals:
        - Does NOT complete the transaction; callers call
          TransactionService.complete() afterwards.
        - Does NOT store signature artifacts, only references to them.
    """

    def __init__(
        self,
        session: Session,
        clock: Clock | None = None,
        signature_store: SignatureStore | None = None,
        code_ttl: timedelta = DEFAULT_CODE_TTL,
        code_digits: int = DEFAULT_CODE_DIGITS,
        code_generator: Callable[[int], str] = generate_numeric_code,
    ):
        super().__init__(session, clock)
        self._transactions = TransactionService(session, self._clock)
        self._signature_store = signature_store
        self._code_ttl = code_ttl
        self._code_digits = code_digits
        self._code_generator = code_generator

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _load_pickup(self, transaction_id: UUID | str) -> InventoryTransaction:
        tx = self._transactions.load(transaction_id)
        if TransactionType(tx.tx_type) != TransactionType.PICKUP:
            raise ValidationError(
                f"Transaction {tx.id} is a {TransactionType(tx.tx_type).value}, "
                f"not a pickup",
                field="type",
            )
        return tx

    @staticmethod
    def _require_picker(picker_name: str) -> str:
        if not picker_name or not picker_name.strip():
            raise ValidationError("Picker name must not be blank", field="picker_name")
        return picker_name.strip()

    @staticmethod
    def _require_active(tx: InventoryTransaction) -> None:
        status = TransactionStatus(tx.status)
        if status not in ACTIVE_STATUSES:
            raise TransactionNotActiveError(str(tx.id), status.value)

    def _latched(
        self,
        tx: InventoryTransaction,
        conf: PickupConfirmation,
        picker_name: str,
    ) -> PickupConfirmationInfo:
        """Re-confirmation of a confirmed pickup: no-op or conflict."""
        if conf.picker_name != picker_name:
            logger.warning(
                "pickup_confirmation_conflict",
                extra={"confirmed_by": conf.picker_name, "attempted_by": picker_name},
            )
            raise ConfirmationConflictError(str(tx.id), conf.picker_name, picker_name)
        logger.info("pickup_already_confirmed")
        return confirmation_to_info(conf)

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------

    def generate_code(self, transaction_id: UUID | str, picker_name: str) -> IssuedCode:
        """
        Issue a fresh one-time code, replacing any unconsumed one.

        Returns:
            IssuedCode with the code and its expiry instant.  This is the
            only place the code value leaves the service.
        """
        picker_name = self._require_picker(picker_name)
        tx = self._load_pickup(transaction_id)
        with LogContext.bind(transaction_id=str(tx.id), actor=picker_name):
            self._require_active(tx)
            conf = tx.pickup_confirmation
            if conf is not None and conf.confirmed:
                raise AlreadyConfirmedError(str(tx.id))

            now = self._clock.now()
            code = self._code_generator(self._code_digits)
            expires_at = now + self._code_ttl
            replaced = conf is not None and conf.code is not None

            if conf is None:
                conf = PickupConfirmation(picker_name=picker_name, confirmed=False)
                tx.pickup_confirmation = conf
            conf.picker_name = picker_name
            conf.method = ConfirmationMethod.ONE_TIME_CODE
            conf.code = code
            conf.code_issued_at = now
            conf.code_expires_at = expires_at
            tx.updated_at = now
            self.session.flush()

            logger.info(
                "pickup_code_issued",
                extra={"expires_at": expires_at, "replaced_previous": replaced},
            )
            return IssuedCode(transaction_id=tx.id, code=code, expires_at=expires_at)

    def confirm_by_code(
        self,
        transaction_id: UUID | str,
        picker_name: str,
        supplied_code: str,
    ) -> PickupConfirmationInfo:
        """
        Confirm a pickup with the code issued for it.

        Expiry is checked before the value: a correct code presented after
        ``expires_at`` fails with ExpiredCodeError.
        """
        picker_name = self._require_picker(picker_name)
        tx = self._load_pickup(transaction_id)
        with LogContext.bind(transaction_id=str(tx.id), actor=picker_name):
            conf = tx.pickup_confirmation
            if conf is not None and conf.confirmed:
                return self._latched(tx, conf, picker_name)

            self._require_active(tx)
            if conf is None or conf.code is None or conf.code_expires_at is None:
                raise NoActiveCodeError(str(tx.id))

            now = self._clock.now()
            if now > conf.code_expires_at:
                logger.warning("pickup_code_expired", extra={"expired_at": conf.code_expires_at})
                raise ExpiredCodeError(str(tx.id), conf.code_expires_at.isoformat())

            if not hmac.compare_digest(str(supplied_code).encode(), conf.code.encode()):
                logger.warning("pickup_code_mismatch")
                raise CodeMismatchError(str(tx.id))

            conf.picker_name = picker_name
            conf.method = ConfirmationMethod.ONE_TIME_CODE
            conf.confirmed = True
            conf.confirmed_at = now
            conf.code = None
            tx.updated_at = now
            self.session.flush()

            logger.info("pickup_confirmed", extra={"method": ConfirmationMethod.ONE_TIME_CODE.value})
            return confirmation_to_info(conf)

    def confirm_by_signature(
        self,
        transaction_id: UUID | str,
        picker_name: str,
        signature_ref: str,
    ) -> PickupConfirmationInfo:
        """Confirm a pickup with a signature artifact; outstanding codes are dropped."""
        picker_name = self._require_picker(picker_name)
        tx = self._load_pickup(transaction_id)
        with LogContext.bind(transaction_id=str(tx.id), actor=picker_name):
            conf = tx.pickup_confirmation
            if conf is not None and conf.confirmed:
                return self._latched(tx, conf, picker_name)

            self._require_active(tx)
            if (
                not signature_ref
                or self._signature_store is None
                or not self._signature_store.exists(signature_ref)
            ):
                raise ValidationError(
                    f"Signature artifact not found or empty: {signature_ref!r}",
                    field="signature_ref",
                )

            now = self._clock.now()
            if conf is None:
                conf = PickupConfirmation(picker_name=picker_name, confirmed=False)
                tx.pickup_confirmation = conf
            conf.picker_name = picker_name
            conf.method = ConfirmationMethod.SIGNATURE
            conf.signature_ref = signature_ref
            conf.confirmed = True
            conf.confirmed_at = now
            conf.code = None
            tx.updated_at = now
            self.session.flush()

            logger.info("pickup_confirmed", extra={"method": ConfirmationMethod.SIGNATURE.value})
            return confirmation_to_info(conf)
