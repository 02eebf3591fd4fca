"""
High-level use cases for the Noteboard API.

Each service module orchestrates repositories/adapters to implement business
rules (change password, enroll an MFA device, export or delete an account).

Routers (FastAPI endpoints) call these services instead of opening database
sessions or reading cookies inside the business logic.
"""
