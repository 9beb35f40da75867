from rest_framework.permissions import BasePermission, SAFE_METHODS


def _roles(request):
    tok = getattr(request, "auth", None) or {}
    if not hasattr(tok, "get"):
        tok = {}
    roles = set(tok.get("realm_access", {}).get("roles", []))
    for v in tok.get("resource_access", {}).values():
        roles |= set(v.get("roles", []))
    # On supporte aussi un header override pour dev/local si besoin
    hdr = request.META.get("HTTP_X_ROLES")
    if hdr:
        roles |= set([r.strip() for r in hdr.split(",") if r.strip()])
    return roles


class IsShopStaff(BasePermission):
    """ Personnel de l'atelier (technicien, accueil, admin). """
    STAFF_ROLES = {"ROLE_TECHNICIEN", "ROLE_ACCUEIL", "ROLE_ADMIN"}

    def has_permission(self, request, view):
        return len(_roles(request) & self.STAFF_ROLES) > 0


class StaffOrReadOnly(BasePermission):
    def has_permission(self, request, view):
        user = getattr(request, "user", None)
        if not getattr(user, "is_authenticated", False):
            return False
        if request.method in SAFE_METHODS:
            return True
        return IsShopStaff().has_permission(request, view)
