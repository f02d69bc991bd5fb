"""
auth — User authentication module.

Provides:
  • Signed bearer token issue & verification (``TokenIssuer``)
  • Password hashing (bcrypt)
  • Register / Login / Me API routes
  • ``get_current_user_id`` FastAPI dependency
"""
