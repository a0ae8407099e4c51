"""Plant Health Monitor - leaf photo diagnosis with per-user history.

Core pieces:
- Account registry and session store (who is logged in, with which role)
- Analysis pipeline (image selection -> LLM inference -> result or error)
- History store (append-only record of completed analyses, role-filtered)
- View router (auth / user / admin surface selection)
"""

__version__ = "0.1.0"
