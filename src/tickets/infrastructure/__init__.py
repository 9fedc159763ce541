"""
Ticket Infrastructure Layer
===========================

Infrastructure implementations for the ticket module:
- models: SQLAlchemy ORM models (users, tickets, history, sequences,
  comments, attachments)
- mappers: row <-> entity conversion
- repositories: SQLAlchemy implementations of the application interfaces

Import the submodules directly; the reporting predicate builder depends on
the models, and the ticket repositories depend on the predicate builder.
"""
