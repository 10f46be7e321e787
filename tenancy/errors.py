class ScopeError(Exception):
    """
    Tenant isolation violation: no scope, a closed scope, or an attempt to
    reach another organization's data. Security relevant, never auto-corrected.
    """
    pass
