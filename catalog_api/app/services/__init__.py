"""
Service layer.

Each service encapsulates the business logic of one domain and is
constructed with the store handle it operates on, so handlers never
touch SQL directly.
"""
