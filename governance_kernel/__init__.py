"""
Governance Kernel

Authorization and approval-workflow primitives for contract documents:
- Role-based permissions with contextual conditions
- Multi-step approval workflow instances with append-only history
- Five-stage drafting gate
- Structured logging, typed errors and SQLAlchemy persistence
"""

__version__ = "0.1.0"
