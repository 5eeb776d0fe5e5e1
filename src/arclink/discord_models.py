from pydantic import BaseModel

COLOR_SUCCESS = 0x008000
COLOR_FAILURE = 0xFF0000


class DiscordEmbedThumbnail(BaseModel):
    url: str


class DiscordEmbedField(BaseModel):
    name: str
    value: str
    inline: bool = False


class DiscordEmbed(BaseModel):
    title: str
    url: str | None = None
    description: str = ""
    color: int = COLOR_SUCCESS
    thumbnail: DiscordEmbedThumbnail | None = None
    fields: list[DiscordEmbedField] | None = None


class DiscordMessage(BaseModel):
    content: str | None = None
    embeds: list[DiscordEmbed] = []

    def to_payload(self) -> dict:
        return self.model_dump(exclude_none=True)
