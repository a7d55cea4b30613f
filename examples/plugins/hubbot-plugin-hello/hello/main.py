import os

GREETING = "Hello"


def plugin_init():
    global GREETING
    GREETING = os.getenv("HELLO_GREETING", GREETING)
