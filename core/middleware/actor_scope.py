from django.utils.deprecation import MiddlewareMixin

from core.context import bind_actor, clear_actor


def _actor_from(request):
    user = getattr(request, "user", None)
    if getattr(user, "is_authenticated", False):
        return user.get_username()
    # Le front envoie le technicien connecté quand la session vient d'un proxy d'auth
    return request.META.get("HTTP_X_TECHNICIEN") or None


class ActorScopeMiddleware(MiddlewareMixin):
    """
    Positionne l'acteur de la requête (utilisateur authentifié ou en-tête
    ``X-Technicien``) dans le contexte utilisé par :
      - les logs (ActorFilter)
      - l'historique des statuts d'intervention
    Le contexte est vidé en fin de requête.
    """

    def process_request(self, request):
        clear_actor()
        bind_actor(_actor_from(request))

    def process_response(self, request, response):
        clear_actor()
        return response
