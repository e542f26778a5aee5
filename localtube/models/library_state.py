from typing import Dict, List
from pydantic import BaseModel, ConfigDict, Field


class LibraryState(BaseModel):
    """
    User state persisted in localtube-db.json.
    Keyed by video id, so catalog rebuilds never touch it.
    """
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    custom_folders: List[str] = Field(default_factory=list, alias="customFolders")
    history: Dict[str, float] = Field(default_factory=dict, description="id -> resume position in seconds")
    liked_videos: List[str] = Field(default_factory=list, alias="likedVideos")
    playlists: Dict[str, List[str]] = Field(default_factory=dict)
