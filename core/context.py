# core/context.py
from contextvars import ContextVar

# Utilisateur / technicien à l'origine de la requête courante.
# Renseigné par ActorScopeMiddleware puis affiné par les vues DRF après authentification.
_current_actor: ContextVar = ContextVar("atelier_actor", default=None)


def bind_actor(actor):
    if actor:
        _current_actor.set(str(actor))


def get_actor():
    return _current_actor.get()


def clear_actor():
    _current_actor.set(None)
