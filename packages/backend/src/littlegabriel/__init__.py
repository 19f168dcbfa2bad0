"""LittleGabriel — faith-based counseling, Bible reading, and prayer wall.

The backend behind the LittleGabriel app: AI-assisted biblical counseling
chat, a Bible reader proxy, sermon generation, and a community prayer wall,
all sitting on one email/password session service.
"""

__version__ = "0.1.0"
