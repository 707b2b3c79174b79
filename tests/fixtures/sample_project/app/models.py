class Item:
    def __init__(self, name, cents):
        self.name = name
        self.cents = cents


def _private_helper():
    return None
