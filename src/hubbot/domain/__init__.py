from .types import CapabilityKind, Contact, LoadState, Permission, PluginFilter, PluginKind, Role, Scene, Sender
from .message import Element
from .manifest import EnvEntry, PluginManifest, PluginSection
from .package import PackageDescriptor
from .capability import Accept, Button, Capability, Command, Handler, SourceFile, Task

__all__ = [
    "CapabilityKind",
    "Contact",
    "LoadState",
    "Permission",
    "PluginFilter",
    "PluginKind",
    "Role",
    "Scene",
    "Sender",
    "Element",
    "EnvEntry",
    "PluginManifest",
    "PluginSection",
    "PackageDescriptor",
    "Accept",
    "Button",
    "Capability",
    "Command",
    "Handler",
    "SourceFile",
    "Task",
]
