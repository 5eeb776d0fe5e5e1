from pydantic import BaseModel, ConfigDict, Field


class _ReportModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class ReportEncounter(_ReportModel):
    boss: str = ""
    boss_id: int = Field(default=0, alias="bossId")
    success: bool | None = None
    is_cm: bool = Field(default=False, alias="isCm")


class ReportEvtc(_ReportModel):
    type: str = ""
    version: str = ""
    boss_id: int = Field(default=0, alias="bossId")


class ReportPlayer(_ReportModel):
    display_name: str = ""
    character_name: str = ""
    profession: int = 0
    elite_spec: int = 0


class ReportExtra(_ReportModel):
    recorded_by: str = Field(default="", alias="recordedBy")
    duration: str = ""
    elite_insights_version: str = Field(default="", alias="eliteInsightsVersion")


class EncounterResult(_ReportModel):
    """A dps.report upload summary."""
    permalink: str
    upload_time: int = Field(default=0, alias="uploadTime")
    encounter: ReportEncounter = ReportEncounter()
    evtc: ReportEvtc = ReportEvtc()
    players: dict[str, ReportPlayer] = {}
    extra: ReportExtra | None = Field(default=None, alias="extraJSON")

    @property
    def succeeded(self) -> bool:
        return bool(self.encounter.success)

    @property
    def boss_name(self) -> str:
        return self.encounter.boss + (" CM" if self.encounter.is_cm else "")
