"""
Internal data models.

Raw catalog entries from the API stay plain dicts; everything the rest of
the service hands around is one of these Pydantic models.
"""

from typing import List, Optional, Union
from pydantic import BaseModel, ConfigDict


# =============================================================================
# CONTENT PACKS
# =============================================================================

class TaskChoice(BaseModel):
    """One answer option, flattened out of the nested catalog item."""
    id: Union[int, str, None] = None
    text: Optional[str] = None
    image_url: Optional[str] = None
    is_correct: bool = False


class Task(BaseModel):
    """One question of a pack."""
    id: Union[int, str, None] = None
    question_text: Optional[str] = None
    audio_url: Optional[str] = None
    correct_choice: int = -1        # -1 when no choice is marked correct
    choices: List[TaskChoice] = []

    def is_correct(self, index: int) -> bool:
        """A choice index matches only a real correct choice."""
        return self.correct_choice >= 0 and index == self.correct_choice


class ContentPack(BaseModel):
    """A themed quiz after transformation."""
    id: Union[int, str, None] = None
    slug: str
    name: str
    tasks: List[Task] = []


class PackSummary(BaseModel):
    """Menu entry for a pack."""
    id: Union[int, str, None] = None
    slug: str
    name: str
    description: str
    image: Optional[str] = None
    questionsCount: int = 0
    is_free: bool = False
    is_purchased: bool = False


# =============================================================================
# PURCHASES
# =============================================================================

class PurchaseResult(BaseModel):
    """What the purchase initiation step produced."""
    success: bool
    transactionId: Optional[str] = None
    productId: str

    # Store-specific fields are forwarded to verification untouched
    model_config = ConfigDict(extra="allow")


class VerificationResult(BaseModel):
    """Server reply to a verification request."""
    success: bool = False

    model_config = ConfigDict(extra="allow")
