"""
In-memory stand-ins for the capabilities the chat services consume.

- RecordingNotifier: replaces CeleryNotifier in service tests; records
  every scheduled event without a transaction or broker
- FakeRealtime: RealtimeGateway with a configurable set of online users
- FakePush: push dispatcher that records notices
"""


class RecordingNotifier:
    def __init__(self):
        self.events = []
        self.messages = []
        self.discarded = []

    def group_event(self, recipient_ids, event, payload, push=None):
        recipients = sorted(set(recipient_ids))
        if recipients:
            self.events.append(
                {"recipients": recipients, "event": event, "payload": payload, "push": push}
            )

    def message_sent(self, message_id):
        self.messages.append(message_id)

    def discard_files(self, paths):
        if paths:
            self.discarded.extend(paths)

    def events_named(self, event):
        return [e for e in self.events if e["event"] == event]

    def recipients_of(self, event):
        return sorted({r for e in self.events_named(event) for r in e["recipients"]})


class FakeRealtime:
    def __init__(self, online=(), fail_for=()):
        self.online = set(online)
        self.fail_for = set(fail_for)
        self.emitted = []

    def emit(self, user_id, event, payload):
        if user_id in self.fail_for:
            raise ConnectionError("channel layer unavailable")
        self.emitted.append((user_id, event, payload))

    def is_online(self, user_id):
        return user_id in self.online


class FakePush:
    def __init__(self):
        self.notified = []

    def notify(self, user_id, notice):
        self.notified.append((user_id, notice))

    @property
    def user_ids(self):
        return [user_id for user_id, _ in self.notified]


class FakeStorage:
    """AttachmentStorage double that can fail on the n-th store."""

    def __init__(self, fail_on=None):
        self.fail_on = fail_on
        self.stored = []
        self.deleted = []

    def store(self, group_id, uploaded_file):
        if self.fail_on is not None and len(self.stored) == self.fail_on:
            raise OSError("disk full")
        path = f"chat_attachments/{group_id}/{len(self.stored)}_{uploaded_file.name}"
        self.stored.append(path)
        return {
            "url": f"/media/{path}",
            "storage_path": path,
            "file_type": "image" if uploaded_file.name.endswith(".png") else "document",
            "file_name": uploaded_file.name,
            "file_size": uploaded_file.size,
            "width": None,
            "height": None,
        }

    def delete(self, paths):
        self.deleted.extend(paths)
        return []
