"""
Report Infrastructure Layer
===========================

- predicates: TicketFilter -> SQL WHERE clause
- repositories: read-only ticket queries for reports

Import the submodules directly; the ticket repositories import the
predicate builder.
"""
