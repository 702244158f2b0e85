# Loaded from the configured factory path, not imported as a package module
from request_factories import RequestFactory


class InvoiceRequestFactory(RequestFactory):
    def definition(self):
        return {
            "number": "INV-0001",
            "lines": [{"description": "Consulting", "amount": 100}],
        }
