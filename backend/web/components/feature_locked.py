"""
Placeholder views rendered instead of a page: locked feature and loading.
"""

from .base import Component


class FeatureLocked(Component):
    """Shown when an administrator restricted a feature for the student."""

    def __init__(self, feature_label: str):
        self.feature_label = feature_label

    def render(self) -> str:
        return f"""
        <section class="card feature-locked" role="alert">
            <h1>Access Locked</h1>
            <p>Access to <strong>{self.escape(self.feature_label)}</strong> is currently restricted by the administrator.</p>
            <p class="text-muted">Please contact the school administration if you believe this is a mistake.</p>
        </section>"""


class Loading(Component):
    def render(self) -> str:
        return '<div class="loading" role="status" aria-live="polite">Loading...</div>'
