"""Global constants for the kickoff application."""

import datetime

# Firestore collections
MATCHES_COLLECTION = "matches"
USERS_COLLECTION = "users"
VENUES_COLLECTION = "venues"
PAYMENTS_COLLECTION = "payments"

# Match lifecycle
STATUS_SCHEDULED = "scheduled"
STATUS_IN_PROGRESS = "in-progress"
STATUS_COMPLETED = "completed"
STATUS_CANCELLED = "cancelled"
TERMINAL_STATUSES = frozenset({STATUS_COMPLETED, STATUS_CANCELLED})

# A match is assumed to last two hours unless it says otherwise.
MATCH_DURATION = datetime.timedelta(hours=2)

MATCH_TYPES = ("5-aside", "7-aside", "11-aside")
VISIBILITY_OPTIONS = ("public", "invite", "private")

POSITION_UNASSIGNED = "unassigned"
POSITIONS = ("goalkeeper", "defender", "midfielder", "forward", POSITION_UNASSIGNED)

# Payments
PAYMENT_METHODS = ("cash", "transfer", "other")
PAYMENT_PENDING = "pending"
PAYMENT_COMPLETED = "completed"
PAYMENT_REFUNDED = "refunded"
PAYMENT_STATUSES = (PAYMENT_PENDING, PAYMENT_COMPLETED, PAYMENT_REFUNDED)
