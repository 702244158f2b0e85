"""Request types the test factories are bound to."""


class SignupRequest:
    pass


class ContactRequest:
    pass


class ProfileRequest:
    pass
