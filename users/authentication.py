def user_authentication_rule(user):
    """
    Token login rule: the account must exist, be active and not blocked.
    """
    return user is not None and user.is_active and not getattr(user, 'is_blocked', False)
