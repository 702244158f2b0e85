class LoginRequest:
    pass


class OrphanRequest:
    pass
