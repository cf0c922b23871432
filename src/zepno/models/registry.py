"""All ORM models in one place; ``metadata`` covers every table."""

from zepno.models.otp_session import OtpSession
from zepno.models.transaction import Transaction
from zepno.models.user import Base, User

MODELS = (User, Transaction, OtpSession)

metadata = Base.metadata
