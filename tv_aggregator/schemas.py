from typing import assert_never

from pydantic import BaseModel, Field

from tv_aggregator.services.notification_service import Notification
from tv_aggregator.state import Error, Loading, PipelineState, Ready, state_kind


class ChannelResponse(BaseModel):
    """Single channel"""
    name: str
    epg_name: str
    url_list: list[str] = Field(..., description="Stream URLs, preferred first")
    logo: str | None = None


class ChannelGroupResponse(BaseModel):
    """Channel group in source order"""
    name: str
    channels: list[ChannelResponse]


class StateResponse(BaseModel):
    """Current pipeline state"""
    kind: str = Field(..., description="One of 'loading', 'error', 'ready'")
    run: int = Field(..., description="Token of the active pipeline run")
    message: str | None = Field(None, description="Progress or error message")
    groups: list[ChannelGroupResponse] = Field(default_factory=list)
    epg_channels: int = Field(0, description="Number of channels with programme data")

    @classmethod
    def from_state(cls, state: PipelineState, run: int) -> "StateResponse":
        match state:
            case Loading(message=message) | Error(message=message):
                return cls(kind=state_kind(state), run=run, message=message)
            case Ready(channel_group_list=groups, epg_list=epg_list):
                return cls(
                    kind=state_kind(state),
                    run=run,
                    groups=[
                        ChannelGroupResponse(
                            name=group.name,
                            channels=[
                                ChannelResponse(
                                    name=channel.name,
                                    epg_name=channel.epg_name,
                                    url_list=list(channel.url_list),
                                    logo=channel.logo,
                                )
                                for channel in group.channel_list
                            ],
                        )
                        for group in groups
                    ],
                    epg_channels=len(epg_list),
                )
            case _:
                assert_never(state)


class NotificationResponse(BaseModel):
    """User-visible notification"""
    message: str
    severity: str
    created_at: str = Field(..., description="ISO8601 UTC timestamp")

    @classmethod
    def from_notification(cls, notification: Notification) -> "NotificationResponse":
        return cls(
            message=notification.message,
            severity=notification.severity.value,
            created_at=notification.created_at.isoformat(),
        )


class RefreshResponse(BaseModel):
    """Result of a refresh trigger"""
    status: str = "started"
    reason: str
