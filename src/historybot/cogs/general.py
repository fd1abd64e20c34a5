from discord.ext import commands

MAX_HELP_LEN = 1900  # keep a little margin below Discord 2000 limit


class General(commands.Cog):
    def __init__(self, bot: commands.Bot):
        self.bot = bot

    @commands.command()
    async def ping(self, ctx: commands.Context):
        """Responds with Pong!"""
        await ctx.send("Pong!")

    def plugin_lines(self) -> list[str]:
        plugins = self.bot.get_cog("HistoryPlugins")
        if plugins is None or not plugins.configs:
            return ["- No history plugins configured."]
        return [f"- `{c.command_prefix} <period>` {c.name}: {c.description}" for c in plugins.configs]

    @commands.command(name="help")
    async def help_cmd(self, ctx: commands.Context):
        """Show available digest commands (<=2000 chars)."""
        lines = [
            "**Historybot Help**",
            "Periods look like `4h`, `2d`, `1w`, `1month` or `3 hours`; the default is `1d`.",
            "",
            "History digests",
            *self.plugin_lines(),
            "",
            "Conversation summary",
            "- Mention the bot with `tldr`, `summarize` or `recap` (e.g., `@Bot tldr of the last 2 hours`).",
            "- Long summaries are attached as a text file.",
            "",
            "Channel questions",
            "- `disexplain <question> <#channel> [period]` posts an analysis to that channel (default `4h`).",
            "",
            "Other",
            "- `ping` returns `Pong!`.",
        ]
        await ctx.send("\n".join(lines)[:MAX_HELP_LEN])


async def setup(bot: commands.Bot):
    await bot.add_cog(General(bot))
