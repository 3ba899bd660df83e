"""Device-local app state: user, survey, cart, search history, suggestions."""

import logging
from pathlib import Path

from pydantic import BaseModel, Field
from pydantic import ValidationError as SchemaValidationError

from shoppr.schemas.search import Product
from shoppr.schemas.user import SurveyRecord, UserProfile

logger = logging.getLogger(__name__)

HISTORY_LIMIT = 6


class ClientState(BaseModel):
    user: UserProfile | None = None
    survey: SurveyRecord | None = None
    cart: list[Product] = Field(default_factory=list)
    search_history: dict[str, list[str]] = Field(default_factory=dict)  # category id -> queries, newest first
    suggestions: dict[str, list[str]] = Field(default_factory=dict)
    tutorial_completed: bool = False

    def add_to_cart(self, product: Product) -> bool:
        """Add a liked product. Returns False if it is already in the cart."""
        if any(item.id == product.id for item in self.cart):
            return False
        # Ranked products carry rank/reasoning; the cart only keeps the listing
        self.cart.append(Product.model_validate(product.model_dump(include=set(Product.model_fields))))
        return True

    def remove_from_cart(self, product_id: str) -> None:
        self.cart = [item for item in self.cart if item.id != product_id]

    def clear_cart(self) -> None:
        self.cart = []

    def record_search(self, category_id: str, query: str) -> None:
        history = [q for q in self.search_history.get(category_id, []) if q != query]
        self.search_history[category_id] = [query, *history][:HISTORY_LIMIT]

    def history_for(self, category_id: str) -> list[str]:
        return list(self.search_history.get(category_id, []))

    def clear_history(self) -> None:
        self.search_history = {}

    def complete_tutorial(self) -> None:
        self.tutorial_completed = True

    def reset_tutorial(self) -> None:
        """Show the swipe tutorial again on the next results screen."""
        self.tutorial_completed = False

    def set_survey(self, survey: SurveyRecord) -> None:
        """Store a (re)completed survey; suggestions built from the old one are stale."""
        self.survey = survey
        self.suggestions.clear()

    def logout(self) -> None:
        self.user = None
        self.survey = None
        self.cart = []
        self.search_history = {}
        self.suggestions.clear()
        self.tutorial_completed = False


class LocalStateStore:
    """Persist ClientState as a JSON file on the device."""

    def __init__(self, path: str | Path):
        self.path = Path(path)

    def load(self) -> ClientState:
        if not self.path.exists():
            return ClientState()
        try:
            return ClientState.model_validate_json(self.path.read_text(encoding="utf-8"))
        except (OSError, SchemaValidationError) as e:
            logger.error(f"Error loading local state, starting fresh: {e}")
            return ClientState()

    def save(self, state: ClientState) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(state.model_dump_json(by_alias=True), encoding="utf-8")

    def clear(self) -> None:
        self.path.unlink(missing_ok=True)
