from hubbot.sdk import Permission, Plugin, command, rule, task


async def hello(e):
    await e.reply(f"Hello, {e.sender.nick or e.user_id}!", at=True)


async def whoami(e):
    await e.reply(f"level {e.level}")


class Admin(Plugin):
    name = "hello-admin"
    rules = [rule(r"^#reload-greeting$", "reload", permission=Permission.MASTER)]

    async def reload(self, e):
        await e.reply("greeting reloaded", recall_after=30)


greet = command(r"^#hello$", hello, priority=100)
me = command(r"^#whoami$", whoami)
heartbeat = task("hello-heartbeat", "*/10 * * * *", lambda: None, log=False)
