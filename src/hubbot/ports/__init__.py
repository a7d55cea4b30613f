from .adapter import AdapterInfo, BotAdapter, SendResult

__all__ = ["AdapterInfo", "BotAdapter", "SendResult"]
