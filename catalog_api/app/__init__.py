"""
Application package.

``core`` holds configuration, logging, the SQLite store and token
security; ``services`` the account and product logic; ``schemas`` the
Pydantic models; ``api`` the routers.  Importing this package has no
side effects: applications are built with ``main.create_app``.
"""
