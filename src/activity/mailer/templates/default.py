"""Default notification email — used when no template matches the key."""


class DefaultTemplate:
    @staticmethod
    def render(context: dict) -> dict:
        notifier = context.get("notifier_name")
        actor = f"{notifier} " if notifier else ""
        lines = [
            f"Dear {context['target_name']},",
            "",
            f"You have received a new notification: {actor}{context['key']} on {context['notifiable_type']}.",
        ]
        if context.get("notifiable_path"):
            lines += ["", f"Move to notified {context['notifiable_type'].lower()}: {context['notifiable_path']}"]
        lines += ["", "Thank you!"]
        return {"subject": None, "body": "\n".join(lines)}
