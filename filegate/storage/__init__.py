from filegate.storage.files import FileStorage

__all__ = ["FileStorage"]
