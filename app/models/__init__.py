"""SQLAlchemy models package"""
from .user import User, Employee
from .job import Job
from .bid import Bid
from .notification import Notification
from .job_event import JobEvent
from .chat_message import ChatMessage
from .rating import Rating

__all__ = [
    'User',
    'Employee',
    'Job',
    'Bid',
    'Notification',
    'JobEvent',
    'ChatMessage',
    'Rating',
]
