"""Default batch notification email — a digest of several notifications."""


class BatchDefaultTemplate:
    @staticmethod
    def render(context: dict) -> dict:
        items = context.get("notifications", [])
        lines = [
            f"Dear {context['target_name']},",
            "",
            f"You have received {len(items)} notifications:",
        ]
        for item in items:
            notifier = item.get("notifier_name")
            actor = f"{notifier} " if notifier else ""
            lines.append(f"- {actor}{item['key']} on {item['notifiable_type']}")
        lines += ["", "Thank you!"]
        return {"subject": None, "body": "\n".join(lines)}
