# backend/models/users.py
from models.base import Record, Identifier

# Represents a user account with credentials and system role (admin / customer).
# Passwords are kept in plaintext in users.json, as the seed data ships them.
class User(Record):
    id: Identifier
    username: str
    password: str
    role: str = "customer"
