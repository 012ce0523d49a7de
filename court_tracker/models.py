# models.py
import sqlalchemy
from court_tracker.database import metadata

# 'users' table, written by the identity provider
users = sqlalchemy.Table(
    "users",
    metadata,
    sqlalchemy.Column("id", sqlalchemy.String, primary_key=True),
    sqlalchemy.Column("username", sqlalchemy.String, unique=True, index=True),
    sqlalchemy.Column("full_name", sqlalchemy.String),
    sqlalchemy.Column("email", sqlalchemy.String, unique=True, index=True),
    sqlalchemy.Column("hashed_password", sqlalchemy.String),
    sqlalchemy.Column("role", sqlalchemy.String, default="player"),
)

# 'courts' table, the catalog seed; occupancy lives in memory
courts = sqlalchemy.Table(
    "courts",
    metadata,
    sqlalchemy.Column("id", sqlalchemy.String, primary_key=True),
    sqlalchemy.Column("sport", sqlalchemy.String, nullable=False),
    sqlalchemy.Column("name", sqlalchemy.String, nullable=False),
    sqlalchemy.Column("court_number", sqlalchemy.Integer, nullable=False),
    sqlalchemy.Column("position", sqlalchemy.Integer, nullable=False, index=True),
)
