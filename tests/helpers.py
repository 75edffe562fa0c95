"""Builders shared by the test modules."""

from datetime import datetime, timezone

from shopdesk.core.models import PRODUCTS


def utc(*args) -> datetime:
    return datetime(*args, tzinfo=timezone.utc)


def add_product(store, name="T-Shirt", price=20, colors=None, **extra):
    if colors is None:
        colors = [
            {"name": "Blue", "code": "#0000ff", "images": ["https://cdn.example/blue.jpg"],
             "stock": {"S": 10, "M": 3}},
            {"name": "Red", "code": "#ff0000", "images": [], "stock": {"S": 4, "L": 1}},
        ]
    return store.add(PRODUCTS, {"name": name, "price": price, "colors": colors, **extra})


class FakeEmailSender:
    def __init__(self, fail_for=()):
        self.fail_for = set(fail_for)
        self.sent = []

    def send(self, to, subject, html):
        if to in self.fail_for:
            raise OSError(f"mailbox unavailable: {to}")
        self.sent.append((to, subject))
