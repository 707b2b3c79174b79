from .models import Item


def describe(item: Item) -> str:
    return f"{item.name}: {item.cents}"
