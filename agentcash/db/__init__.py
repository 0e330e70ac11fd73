"""ORM model package."""
