"""
asgi.py -- Deployment entry points for Pressroom.

Run locally:   uvicorn asgi:app --reload
AWS Lambda:    handler = asgi.handler  (API Gateway REST or HTTP API proxy)

Mangum translates API Gateway proxy events into ASGI requests, so the same
FastAPI app, gate, and handlers serve both deployments. lifespan="auto" runs
the app lifespan once per cold start, building the stores and token service.
"""

from mangum import Mangum

from api.main import app

handler = Mangum(app, lifespan="auto")
