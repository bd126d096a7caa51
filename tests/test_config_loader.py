import textwrap

import pytest

import rostersync.config as config_module
from rostersync.config import load_sync_config
from rostersync.exceptions import ConfigurationError
from rostersync.models.enums import SyncStyle

VALID_YAML = textwrap.dedent("""
    slack:
      securityTokenBot: xoxb-file
      securityTokenUser: xoxp-file
      infoChannel: C_INFO
    pagerduty:
      authToken: pd-file
      apiUser: bot@example.com
    global:
      logLevel: DEBUG
      write: true
      runAtStart: true
    jobs:
      pd-schedules-on-duty-to-slack-group:
        - crontabExpressionForRepetition: "*/10 * * * *"
          syncOptions:
            handoverTimeFrameForward: 30m
            syncStyle: OverridesOnlyIfThere
            informUserIfContactPhoneNumberMissing: true
          syncObjects:
            slackGroupHandle: oncall-sre
            pdObjectIds: [S_PRIMARY, S_SECONDARY]
      pd-teams-to-slack-group:
        - crontabExpressionForRepetition: "0 6 * * 1-5"
          syncOptions:
            disableSlackHandleTemporaryIfNoneOnShift: true
          syncObjects:
            slackGroupHandle: team-sre
            pdObjectIds: [T_SRE]
""")


@pytest.fixture(autouse=True)
def _no_env_overrides(monkeypatch):
    for name in ("SLACK_BOT_TOKEN", "SLACK_USER_TOKEN", "PAGERDUTY_AUTH_TOKEN"):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setattr(config_module, "SYNC_WRITE", None)
    monkeypatch.setattr(config_module, "RUN_AT_START", None)


@pytest.fixture()
def write_config(tmp_path):
    def _write(text: str):
        path = tmp_path / "config.yml"
        path.write_text(text, encoding="utf-8")
        return path
    return _write


def test_loads_full_file(write_config):
    cfg = load_sync_config(write_config(VALID_YAML))
    assert cfg.slack.info_channel == "C_INFO"
    assert cfg.pagerduty.api_user == "bot@example.com"
    assert cfg.global_.write is True and cfg.global_.log_level == "DEBUG"
    sched = cfg.jobs.schedule_sync[0]
    assert sched.sync_options.sync_style is SyncStyle.OVERRIDES_ONLY_IF_THERE
    assert sched.sync_options.handover_time_frame_forward == "30m"
    assert sched.sync_options.handover_time_frame_backward == "0s"
    assert sched.sync_objects.pagerduty_object_ids == ["S_PRIMARY", "S_SECONDARY"]
    team = cfg.jobs.team_sync[0]
    assert team.sync_options.disable_slack_handle_temporary_if_none_on_shift is True
    assert team.sync_options.sync_style is SyncStyle.FINAL_LAYER


def test_env_secrets_override_file(write_config, monkeypatch):
    monkeypatch.setenv("SLACK_BOT_TOKEN", "xoxb-env")
    monkeypatch.setenv("PAGERDUTY_AUTH_TOKEN", "pd-env")
    cfg = load_sync_config(write_config(VALID_YAML))
    assert cfg.slack.bot_security_token == "xoxb-env"
    assert cfg.slack.user_security_token == "xoxp-file"
    assert cfg.pagerduty.auth_token == "pd-env"


def test_sync_write_env_overrides_file(write_config, monkeypatch):
    monkeypatch.setattr(config_module, "SYNC_WRITE", False)
    cfg = load_sync_config(write_config(VALID_YAML))
    assert cfg.global_.write is False


def test_invalid_cron_rejected(write_config):
    bad = VALID_YAML.replace('"*/10 * * * *"', '"every ten minutes"')
    with pytest.raises(ConfigurationError, match="invalid"):
        load_sync_config(write_config(bad))


def test_unknown_sync_style_rejected(write_config):
    with pytest.raises(ConfigurationError):
        load_sync_config(write_config(VALID_YAML.replace("OverridesOnlyIfThere", "Sometimes")))


def test_empty_object_ids_rejected(write_config):
    with pytest.raises(ConfigurationError):
        load_sync_config(write_config(VALID_YAML.replace("[T_SRE]", "[]")))


def test_missing_file(tmp_path):
    with pytest.raises(ConfigurationError, match="read configuration"):
        load_sync_config(tmp_path / "nope.yml")


def test_not_yaml_mapping(write_config):
    with pytest.raises(ConfigurationError):
        load_sync_config(write_config("- just\n- a list\n"))


def test_bad_duration_is_not_a_load_error(write_config):
    cfg = load_sync_config(write_config(VALID_YAML.replace("30m", "thirty minutes")))
    assert cfg.jobs.schedule_sync[0].sync_options.handover_time_frame_forward == "thirty minutes"


def test_defaults_for_minimal_file(write_config):
    cfg = load_sync_config(write_config("slack: {}\n"))
    assert cfg.global_.write is False
    assert cfg.jobs.schedule_sync == [] and cfg.jobs.team_sync == []
