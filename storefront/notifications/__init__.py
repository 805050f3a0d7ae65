from .email import ResendEmailNotifier, render_confirmation_text

__all__ = ["ResendEmailNotifier", "render_confirmation_text"]
