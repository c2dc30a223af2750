"""Statement import service: parse uploaded files and store categorized transactions."""

from dataclasses import dataclass
from datetime import date
from decimal import Decimal

import structlog
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from finance_tracker.config import settings
from finance_tracker.core.exceptions import ImportFailedError, NotFoundError, ValidationError
from finance_tracker.core.security import AuthenticatedUser
from finance_tracker.models.credit_card import CreditCard
from finance_tracker.models.transaction import PAYMENT_CREDIT_CARD, PAYMENT_UNKNOWN, Transaction
from finance_tracker.services.category_catalog import categorize_by_keywords
from finance_tracker.utils.file_parsers import StatementParseError, parse_statement

logger = structlog.get_logger()


@dataclass
class TransactionDraft:
    """A parsed, categorized transaction waiting to be inserted."""

    date: date
    description: str
    amount: Decimal
    category: str
    userid: str
    payment_method: str = PAYMENT_UNKNOWN
    credit_card_id: str | None = None

    def to_model(self) -> Transaction:
        return Transaction(
            date=self.date,
            description=self.description,
            amount=self.amount,
            category=self.category,
            userid=self.userid,
            payment_method=self.payment_method,
            credit_card_id=self.credit_card_id,
        )


class ImportService:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def import_files(
        self,
        user: AuthenticatedUser,
        files: list[tuple[str, bytes]],
        credit_card_id: str | None = None,
    ) -> dict:
        """Import every uploaded statement, one file at a time.

        A file that fails to parse is reported in ``errors`` and does not stop
        the others. Drafts from all successful files are inserted together.
        """
        if not files:
            raise ValidationError("No files uploaded")
        if len(files) > settings.max_upload_files:
            raise ValidationError(f"Too many files (max {settings.max_upload_files})")

        payment_method = PAYMENT_UNKNOWN
        if credit_card_id:
            await self._get_user_card(credit_card_id, user)
            payment_method = PAYMENT_CREDIT_CARD

        max_bytes = settings.max_upload_size_mb * 1024 * 1024
        drafts: list[TransactionDraft] = []
        file_results: list[dict] = []
        errors: list[str] = []

        for filename, content in files:
            if len(content) > max_bytes:
                message = f"File too large (max {settings.max_upload_size_mb} MB)"
                errors.append(f"{filename}: {message}")
                file_results.append({"filename": filename, "imported_count": 0, "error": message})
                continue

            try:
                file_drafts = await self._process_file(
                    filename, content, user.id, payment_method, credit_card_id
                )
            except StatementParseError as e:
                logger.warning("statement_rejected", filename=filename, error=str(e))
                errors.append(f"{filename}: {e}")
                file_results.append({"filename": filename, "imported_count": 0, "error": str(e)})
                continue

            drafts.extend(file_drafts)
            file_results.append(
                {"filename": filename, "imported_count": len(file_drafts), "error": None}
            )

        if not drafts:
            raise ImportFailedError(errors)

        self.db.add_all([draft.to_model() for draft in drafts])
        await self.db.flush()

        logger.info(
            "statements_imported",
            user_id=user.id,
            files=len(files),
            imported=len(drafts),
            failed_files=len(errors),
        )

        return {
            "imported_count": len(drafts),
            "files": file_results,
            "errors": errors,
        }

    async def _process_file(
        self,
        filename: str,
        content: bytes,
        userid: str,
        payment_method: str,
        credit_card_id: str | None,
    ) -> list[TransactionDraft]:
        parsed = parse_statement(filename, content)

        # description → category, scoped to this file
        categories: dict[str, str] = {}
        drafts: list[TransactionDraft] = []
        for pt in parsed:
            category = categories.get(pt.description)
            if category is None:
                category = await self._categorize_row(pt.description, userid)
                categories[pt.description] = category

            drafts.append(
                TransactionDraft(
                    date=pt.date,
                    description=pt.description,
                    amount=pt.amount,
                    category=category,
                    userid=userid,
                    payment_method=payment_method,
                    credit_card_id=credit_card_id,
                )
            )
        return drafts

    async def _categorize_row(self, description: str, userid: str) -> str:
        """Reuse the user's latest category for this exact description, else keywords."""
        try:
            async with self.db.begin_nested():
                result = await self.db.execute(
                    select(Transaction.category)
                    .where(
                        Transaction.userid == userid,
                        Transaction.description == description,
                    )
                    .order_by(Transaction.date.desc(), Transaction.created_at.desc())
                    .limit(1)
                )
                previous = result.scalar_one_or_none()
        except SQLAlchemyError as e:
            logger.warning("category_history_lookup_failed", error=str(e))
            previous = None

        if previous:
            return previous
        return categorize_by_keywords(description)

    async def _get_user_card(self, card_id: str, user: AuthenticatedUser) -> CreditCard:
        card = await self.db.get(CreditCard, card_id)
        if not card or card.userid != user.id:
            raise NotFoundError("Credit card")
        return card
