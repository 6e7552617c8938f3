"""
Pydantic models for detected subscriptions.
"""

from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field


class BillingCycle(str, Enum):
    MONTHLY = "monthly"
    YEARLY = "yearly"
    QUARTERLY = "quarterly"


class Category(str, Enum):
    STREAMING = "streaming"
    MUSIC = "music"
    PRODUCTIVITY = "productivity"
    GAMING = "gaming"
    CLOUD = "cloud"
    SOFTWARE = "software"
    OTHER = "other"


class Platform(str, Enum):
    """Platform class; selects the extraction strategy and informs category."""
    PATREON = "patreon"
    TEBEX = "tebex"
    SAAS = "saas"
    STREAMING = "streaming"
    OTHER = "other"


class DetectionKind(str, Enum):
    PLATFORM = "platform"
    KEYWORD = "keyword"
    PRICE = "price"


class DetectionResult(BaseModel):
    """Lightweight page hit: which phase fired and the text it fired on."""
    kind: DetectionKind
    content: str
    url: str
    keyword: Optional[str] = None
    platform: Optional[str] = None  # Site label, e.g. "Netflix"
    pattern: Optional[str] = None   # Price pattern name


class TrialInfo(BaseModel):
    """Trial evidence found in text."""
    is_trial: bool = False
    trial_duration: Optional[int] = None  # Days
    trial_start_date: Optional[str] = None  # ISO-8601
    trial_end_date: Optional[str] = None  # ISO-8601


class DetectedSubscription(BaseModel):
    """Full subscription record built from a page. Only exists with a price."""
    service_name: str
    price: float = Field(ge=0)
    billing_cycle: BillingCycle = BillingCycle.MONTHLY
    category: Category = Category.OTHER
    url: str
    platform: Platform = Platform.OTHER
    is_trial: bool = False
    trial_duration: Optional[int] = None
    trial_start_date: Optional[str] = None
    trial_end_date: Optional[str] = None


class EmailSubscription(BaseModel):
    """Subscription record built from one email message or document."""
    service_name: str
    price: Optional[float] = Field(default=None, ge=0)
    billing_cycle: BillingCycle = BillingCycle.MONTHLY
    next_billing_date: Optional[str] = None  # Store as string (YYYY-MM-DD)
    category: Category = Category.OTHER
    source_message_id: Optional[str] = None


class EmailScanSummary(BaseModel):
    """Outcome of one batch email scan; skipped messages are not failures."""
    subscriptions: List[EmailSubscription] = []
    messages_checked: int = 0
    messages_skipped: int = 0
    errors: List[str] = []
