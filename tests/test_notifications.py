import requests

from steam_depot_uploader import notifications
from steam_depot_uploader.models import UploadResult
from steam_depot_uploader.notifications import NotificationService


class FakePost:
    def __init__(self, status_code=204, error=None):
        self.status_code = status_code
        self.error = error
        self.calls = []

    def __call__(self, url, json=None, timeout=None):
        self.calls.append((url, json, timeout))
        if self.error:
            raise self.error
        return type("Response", (), {"status_code": self.status_code, "text": "body"})()


def _result(**overrides):
    values = dict(success=True, exit_code=0, app_id="480", depot_id="481", build_id="12345", upload_id="77")
    values.update(overrides)
    return UploadResult(**values)


def test_disabled_without_webhooks(monkeypatch):
    post = FakePost()
    monkeypatch.setattr(notifications.requests, "post", post)
    service = NotificationService()
    assert not service.enabled
    service.send_upload_notification(_result())
    assert post.calls == []


def test_sends_to_discord_and_slack(monkeypatch):
    monkeypatch.setenv("DISCORD_WEBHOOK_URL", " https://discord.example/hook ")
    monkeypatch.setenv("SLACK_WEBHOOK_URL", "https://slack.example/hook")
    post = FakePost()
    monkeypatch.setattr(notifications.requests, "post", post)

    NotificationService().send_upload_notification(_result(), project="MyGame")

    (discord_url, discord, _), (slack_url, slack, timeout) = post.calls
    assert discord_url == "https://discord.example/hook"
    assert slack_url == "https://slack.example/hook"
    assert timeout == 10

    embed = discord["embeds"][0]
    assert embed["title"] == "Steam Upload Succeeded: MyGame"
    fields = {f["name"]: f["value"] for f in embed["fields"]}
    assert fields["Build ID"] == "12345"
    assert fields["Build Details"] == "https://partner.steamgames.com/apps/builddetails/480/12345"

    attachment = slack["attachments"][0]
    assert attachment["color"] == "#36a64f"
    assert {f["title"]: f["value"] for f in attachment["fields"]}["Upload ID"] == "77"


def test_failure_colors_and_missing_build(monkeypatch):
    post = FakePost()
    monkeypatch.setattr(notifications.requests, "post", post)
    service = NotificationService(slack_webhook="https://slack.example/hook")

    service.send_upload_notification(_result(success=False, exit_code=5, build_id=""))

    attachment = post.calls[0][1]["attachments"][0]
    assert attachment["color"] == "#d32f2f"
    assert attachment["title"] == "Steam Upload Failed: App 480"
    fields = {f["title"]: f["value"] for f in attachment["fields"]}
    assert fields["Build ID"] == "Not found"
    assert "Build Details" not in fields


def test_webhook_errors_are_not_raised(monkeypatch, capsys):
    monkeypatch.setattr(notifications.requests, "post", FakePost(error=requests.exceptions.Timeout("slow")))
    NotificationService(discord_webhook="https://discord.example/hook").send_upload_notification(_result())
    assert "Error sending Discord notification: slow" in capsys.readouterr().out


def test_http_error_status_is_reported(monkeypatch, capsys):
    monkeypatch.setattr(notifications.requests, "post", FakePost(status_code=400))
    NotificationService(slack_webhook="https://slack.example/hook").send_upload_notification(_result())
    assert "Slack webhook error: 400 - body" in capsys.readouterr().out
