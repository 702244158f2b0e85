"""Factories found by naming convention in the configured namespace."""

from request_factories import RequestFactory


class ContactRequestFactory(RequestFactory):
    def definition(self):
        return {
            "subject": "Hello",
            "message": "Just saying hi",
        }
