"""
Server-rendered HTML pages: the subscription form and result pages.

Strings come from src.core.strings; every interpolated user value is
escaped here.
"""

from __future__ import annotations

from html import escape

from src.components.lists.models import MailingList
from src.components.subscription.models import PipelineResult

STYLE = """
    body { font-family: system-ui, sans-serif; max-width: 36rem; margin: 3rem auto; padding: 0 1rem; }
    form { display: grid; gap: .75rem; }
    input, select, button { font-size: 1rem; padding: .5rem; }
    .actions { display: flex; gap: .5rem; }
    .hp { position: absolute; left: -10000px; }
    footer { margin-top: 3rem; font-size: .8rem; color: #666; }
"""


def render_page(title: str, body: str, footer: str = "", lang: str = "en") -> str:
    """Render a complete HTML document. title is escaped; body is trusted."""
    return f"""<!DOCTYPE html>
<html lang="{escape(lang)}">
<head>
    <meta charset="UTF-8" />
    <meta name="viewport" content="width=device-width, initial-scale=1.0" />
    <meta name="robots" content="noindex" />
    <title>{escape(title)}</title>
    <style>{STYLE}</style>
</head>
<body>
    {body}
    <footer>{footer}</footer>
</body>
</html>"""


def _list_options(lists: list[MailingList]) -> str:
    if len(lists) == 1:
        ml = lists[0]
        return f'<input type="hidden" name="mailing_list" value="{escape(ml.address)}" />'
    options = "".join(
        f'<option value="{escape(ml.address)}">{escape(ml.name)}</option>' for ml in lists
    )
    return f'<select name="mailing_list" required>{options}</select>'


def render_index(
    strings: dict[str, dict[str, str]],
    csrf_token: str,
    lists: list[MailingList],
    base_path: str = "",
    lang: str = "en",
) -> str:
    page = strings["page"]
    form = strings["form"]
    description = ""
    if len(lists) == 1 and lists[0].description:
        description = f"<p>{escape(lists[0].description)}</p>"

    body = f"""
    <h1>{escape(page["heading"])}</h1>
    <p>{escape(page["subheading"])}</p>
    {description}
    <form method="post" action="{escape(base_path)}/subscribe">
        <input type="hidden" name="csrf_token" value="{escape(csrf_token)}" />
        <input type="email" name="email" required placeholder="{escape(form["email_placeholder"])}" />
        <input type="text" name="name" placeholder="{escape(form["name_placeholder"])}" />
        {_list_options(lists)}
        <div class="hp" aria-hidden="true">
            <label>{escape(form["website_label"])}
                <input type="text" name="website" tabindex="-1" autocomplete="off" value="" />
            </label>
        </div>
        <div class="actions">
            <button type="submit" name="action" value="subscribe">{escape(form["subscribe_button"])}</button>
            <button type="submit" name="action" value="unsubscribe">{escape(form["unsubscribe_button"])}</button>
        </div>
    </form>"""
    return render_page(page["title"], body, page["footer"], lang)


def render_result(
    strings: dict[str, dict[str, str]],
    result: PipelineResult,
    base_path: str = "",
    lang: str = "en",
) -> str:
    messages = strings["messages"]
    key = result.code.message_key
    title = messages.get(key, messages["operation_failed"])
    template = messages.get(f"{key}_message", messages["operation_failed_message"])
    text = template.format(
        email=escape(result.email),
        list=escape(result.mailing_list),
        error=escape(result.message or messages["operation_failed_message"]),
    )

    body = f"""
    <h1>{escape(title)}</h1>
    <div>{text}</div>
    <p><a href="{escape(base_path) or "/"}">{escape(messages["back_to_homepage"])}</a></p>"""
    return render_page(title, body, strings["page"]["footer"], lang)
