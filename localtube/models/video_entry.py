from pydantic import BaseModel, ConfigDict, Field


class VideoEntry(BaseModel):
    """
    One video file discovered by a scan.
    Frozen: a catalog snapshot is never edited in place, the next scan replaces it.
    """
    model_config = ConfigDict(populate_by_name=True, frozen=True)

    id: str = Field(..., description="Path-derived stable identifier")
    path: str = Field(..., description="Canonical absolute path to the video file")
    title: str = Field(..., description="Display title derived from the filename")
    filename: str
    extension: str = Field(..., description="Lower-case extension without the dot")

    size_bytes: int = Field(..., alias="size")
    size_human: str = Field(..., alias="sizeHuman")

    created_at: float = Field(0.0, alias="createdAt", description="Birth time (epoch seconds)")
    upload_date: str = Field("", alias="uploadDate")

    duration_sec: int = Field(0, alias="durationSeconds")
    duration: str = Field("0:00", description="M:SS or H:MM:SS")

    def to_api(self, resume_time: float = 0, is_liked: bool = False) -> dict:
        """Response view joined with user state; never stored on the entry."""
        data = self.model_dump(by_alias=True)
        data["resumeTime"] = resume_time
        data["isLiked"] = is_liked
        return data
