"""Card management, including the full current-limit recalculation on limit edits"""

import uuid
from datetime import date
from typing import List, Optional

from sqlalchemy.orm import Session

from card_ledger.domain.exceptions import CardNotFoundError
from card_ledger.domain.ledger import current_period, recalculate_current_limit
from card_ledger.domain.models import CardDetails
from card_ledger.domain.validation import validate_card_details
from card_ledger.infrastructure.database.models import Card
from card_ledger.infrastructure.database.repositories import CardRepository, CardTransactionRepository
from card_ledger.infrastructure.observability.metrics import limit_recalculation_counter


class CardService:
    """Create, edit and remove cards"""

    def __init__(self, db: Session):
        self.db = db
        self.cards = CardRepository(db)
        self.charges = CardTransactionRepository(db)

    def create_card(self, details: CardDetails) -> Card:
        validate_card_details(details)
        return self.cards.create(details)

    def get_card(self, card_id: uuid.UUID) -> Card:
        card = self.cards.get_by_id(card_id)
        if card is None:
            raise CardNotFoundError()
        return card

    def list_cards(self) -> List[Card]:
        return self.cards.list_all()

    def update_card(self, card_id: uuid.UUID, details: CardDetails, today: date) -> Card:
        """
        Overwrite a card's details and rebuild its available credit.

        A limit edit has no old/new delta to apply, so the current limit is
        derived again from the charges billed in the current period (as of
        `today`, with the card's new cycle) or later.
        """
        validate_card_details(details)
        card = self.cards.get_for_update(card_id)
        if card is None:
            raise CardNotFoundError()

        card.name = details.name.strip()
        card.issuing_bank = details.issuing_bank.strip()
        card.closing_day = details.closing_day
        card.due_day = details.due_day
        card.limit = details.limit

        charges = self.charges.list_from_period(card.id, current_period(card, today))
        recalculate_current_limit(card, charges, today)
        limit_recalculation_counter.inc()

        return self.cards.save(card)

    def delete_card(self, card_id: uuid.UUID) -> bool:
        card = self.cards.get_by_id(card_id)
        if card is None:
            return False
        self.cards.delete(card)
        return True

    def find_by_name(self, name: str) -> Optional[Card]:
        """Loose match used by the chat assistant: name containment either way, or bank"""
        needle = name.strip().lower()
        if not needle:
            return None

        for card in self.cards.list_all():
            card_name = card.name.strip().lower()
            if needle in card_name or card_name in needle or needle in card.issuing_bank.strip().lower():
                return card
        return None
