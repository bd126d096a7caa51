"""
Pydantic schemas for the YAML job configuration file.

Field aliases follow the camelCase keys of the config file; Python code uses
the snake_case names.
"""
from typing import List

from croniter import croniter
from pydantic import BaseModel, ConfigDict, Field, field_validator

from rostersync.models.enums import SyncStyle


class _ConfigModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class SlackSettings(_ConfigModel):
    bot_security_token: str = Field("", alias="securityTokenBot")
    user_security_token: str = Field("", alias="securityTokenUser")
    info_channel: str = Field("", alias="infoChannel", description="Channel ID for status posts")
    workspace: str = Field("", alias="workspaceForChatLinks")


class PagerDutySettings(_ConfigModel):
    auth_token: str = Field("", alias="authToken")
    api_user: str = Field("", alias="apiUser", description="Email sent as the From header")


class GlobalSettings(_ConfigModel):
    log_level: str = Field("INFO", alias="logLevel")
    write: bool = Field(False, description="False turns every job into a dry run")
    run_at_start: bool = Field(False, alias="runAtStart")


class SyncOptions(_ConfigModel):
    """Per-job options.

    The handover durations stay raw strings here: a bad value must not reject
    the whole file, the job degrades it to zero at run time instead.
    """

    handover_time_frame_forward: str = Field("0s", alias="handoverTimeFrameForward")
    handover_time_frame_backward: str = Field("0s", alias="handoverTimeFrameBackward")
    sync_style: SyncStyle = Field(SyncStyle.FINAL_LAYER, alias="syncStyle")
    disable_slack_handle_temporary_if_none_on_shift: bool = Field(
        False, alias="disableSlackHandleTemporaryIfNoneOnShift"
    )
    inform_user_if_contact_phone_number_missing: bool = Field(
        False, alias="informUserIfContactPhoneNumberMissing"
    )


class SyncObjects(_ConfigModel):
    slack_group_handle: str = Field(alias="slackGroupHandle", min_length=1)
    pagerduty_object_ids: List[str] = Field(alias="pdObjectIds", min_length=1)


class SyncJobConfig(_ConfigModel):
    crontab_expression: str = Field(alias="crontabExpressionForRepetition")
    sync_options: SyncOptions = Field(default_factory=SyncOptions, alias="syncOptions")
    sync_objects: SyncObjects = Field(alias="syncObjects")

    @field_validator("crontab_expression")
    @classmethod
    def _valid_cron(cls, value: str) -> str:
        if not croniter.is_valid(value):
            raise ValueError(f"invalid cron schedule '{value}'")
        return value


class JobsSettings(_ConfigModel):
    schedule_sync: List[SyncJobConfig] = Field(
        default_factory=list, alias="pd-schedules-on-duty-to-slack-group"
    )
    team_sync: List[SyncJobConfig] = Field(
        default_factory=list, alias="pd-teams-to-slack-group"
    )


class SyncConfig(_ConfigModel):
    slack: SlackSettings = Field(default_factory=SlackSettings)
    pagerduty: PagerDutySettings = Field(default_factory=PagerDutySettings)
    global_: GlobalSettings = Field(default_factory=GlobalSettings, alias="global")
    jobs: JobsSettings = Field(default_factory=JobsSettings)


__all__ = [
    "SlackSettings",
    "PagerDutySettings",
    "GlobalSettings",
    "SyncOptions",
    "SyncObjects",
    "SyncJobConfig",
    "JobsSettings",
    "SyncConfig",
]
