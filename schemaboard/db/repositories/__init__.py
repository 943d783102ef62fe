from schemaboard.db.repositories.identity import UserRepository, SessionRepository

__all__ = ['UserRepository', 'SessionRepository']
