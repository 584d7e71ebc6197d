"""Task manager: FastAPI route handlers over a hosted auth/database provider, plus a console client."""
