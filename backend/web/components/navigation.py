"""
Navigation component: role-based sidebar menu.

Which links a role sees is decided here; whether it may open them is decided
by the access guard. Locked student features stay visible and render the
"Access Locked" page.
"""

from typing import Any, Dict, List, Optional, Tuple
from .base import Component

NavItem = Tuple[str, str]

NAV_BY_ROLE: Dict[str, List[NavItem]] = {
    "student": [
        ("/dashboard", "Dashboard"),
        ("/attendance", "Attendance"),
        ("/results", "Results"),
        ("/assignments", "Assignments"),
        ("/fees", "Fees Status"),
        ("/timetable", "Timetable"),
        ("/notices", "Notices"),
        ("/messages", "Messages"),
        ("/profile", "Profile"),
    ],
    "teacher": [
        ("/teacher/dashboard", "Dashboard"),
        ("/notices", "Notices"),
        ("/profile", "Profile"),
    ],
    "admin": [
        ("/admin/dashboard", "Dashboard"),
        ("/notices", "Notices"),
        ("/profile", "Profile"),
    ],
}

ROLE_LABELS = {"student": "Student", "teacher": "Teacher", "admin": "Administrator"}


class Navigation(Component):
    def __init__(self, user: Optional[Dict[str, Any]] = None, current_path: str = "/"):
        self.user = user
        self.current_path = current_path

    def items(self) -> List[NavItem]:
        if not self.user:
            return [("/", "Home"), ("/login", "Login")]
        return NAV_BY_ROLE.get(str(self.user.get("role") or "").lower(), NAV_BY_ROLE["student"])

    def _active_href(self, items: List[NavItem]) -> Optional[str]:
        # Longest matching prefix wins so /teacher/dashboard beats /.
        best = None
        for href, _ in items:
            if self.current_path == href or (href != "/" and self.current_path.startswith(href + "/")):
                if best is None or len(href) > len(best):
                    best = href
        return best

    def render(self) -> str:
        items = self.items()
        active = self._active_href(items)
        links = []
        for href, label in items:
            cls = self.classes("nav-item", active=(href == active))
            aria = ' aria-current="page"' if href == active else ""
            links.append(f'<a href="{self.escape(href)}" class="{cls}"{aria}>{self.escape(label)}</a>')
        footer = ""
        if self.user:
            role = ROLE_LABELS.get(str(self.user.get("role") or "").lower(), "")
            footer = f"""
            <div class="sidebar-footer">
                <div class="user-name">{self.escape(self.user.get("name", ""))}</div>
                <div class="user-role">{self.escape(role)}</div>
                <form method="post" action="/logout" class="logout-form">
                    <button type="submit" class="nav-item nav-logout">Logout</button>
                </form>
            </div>"""
        return f"""
    <aside class="sidebar" id="sidebar" aria-label="Sidebar">
        <nav class="sidebar-nav" role="navigation" aria-label="Main navigation">
            <div class="sidebar-header"><span class="sidebar-title">School Portal</span></div>
            <div class="sidebar-items">{''.join(links)}</div>{footer}
        </nav>
    </aside>"""
