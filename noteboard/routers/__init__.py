"""
FastAPI routers grouped by domain.

Each module exposes an APIRouter included by the main application (app.py);
endpoints stay thin and delegate to the services package.
"""
