import discord

# Discord embed limits
DESCRIPTION_LIMIT = 4096
MAX_FIELDS = 25


def embed_builder(
        title: str,
        description: str = None,
        color: discord.Color = discord.Color.blurple(),
        fields: list[tuple[str, str, bool]] = None,
        footer: str = None,
) -> discord.Embed:
    if description and len(description) > DESCRIPTION_LIMIT:
        description = description[:DESCRIPTION_LIMIT - 1] + "…"

    embed = discord.Embed(
        title=title,
        description=description if description else None,
        color=color
    )
    if fields:
        for name, value, inline in fields[:MAX_FIELDS]:
            embed.add_field(name=name, value=value, inline=inline)

    if footer:
        embed.set_footer(text=footer)

    return embed
