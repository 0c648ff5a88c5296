# core/email_templates.py
"""
Email bodies for contact submissions and new-post announcements.

Templates are rendered through an autoescaping Jinja2 environment, so every
user-supplied value is HTML-escaped. Post excerpts are authored in the admin
editor and may carry light formatting; they pass through a bleach allow-list
instead of being escaped. A plain-text alternative is derived from each HTML
body.
"""

import logging
import re
from dataclasses import dataclass
from typing import Any, Dict, Optional

import bleach
from bs4 import BeautifulSoup
from jinja2 import Environment, StrictUndefined, select_autoescape
from markupsafe import Markup

logger = logging.getLogger(__name__)

EXCERPT_TAGS = ['p', 'br', 'strong', 'em', 'b', 'i', 'u', 'a', 'ul', 'ol', 'li']
EXCERPT_ATTRIBUTES = {'a': ['href', 'title']}

CONTACT_TEMPLATE = """\
<h2>New Message from Your Website</h2>
<p><strong>Name:</strong> {{ name }}</p>
<p><strong>Email:</strong> {{ email }}</p>
<p><strong>Company:</strong> {{ company or 'N/A' }}</p>
<p><strong>Phone:</strong> {{ phone or 'N/A' }}</p>
<p><strong>Message:</strong></p>
<p>{{ message }}</p>
{% if attachment_name %}<p><strong>Attachment:</strong> {{ attachment_name }}</p>{% endif %}
"""

NEW_POST_TEMPLATE = """\
<h2>New Blog Post Published!</h2>
<p>Hello,</p>
<p>A new blog post titled <strong>"{{ title }}"</strong> has been published on our website.</p>
<div>{{ excerpt }}</div>
<a href="{{ link }}" style="display: inline-block; padding: 10px 20px; background-color: #2563eb; color: #ffffff; text-decoration: none; border-radius: 5px;">Read the Full Article</a>
<p>Thank you for staying updated with us.</p>
<br>
<p>{{ signature }}</p>
"""


@dataclass
class RenderedEmail:
    subject: str
    html: str
    text: str


_env = Environment(
    autoescape=select_autoescape(default=True, default_for_string=True),
    undefined=StrictUndefined,
    trim_blocks=True,
    lstrip_blocks=True,
)
_cleaner = bleach.Cleaner(tags=EXCERPT_TAGS, attributes=EXCERPT_ATTRIBUTES, strip=True)


def html_to_text(html_content: str) -> str:
    """Plain-text rendering of an HTML body, links kept as "text (href)" """
    if not html_content:
        return ""

    soup = BeautifulSoup(html_content, 'html.parser')

    for br in soup.find_all('br'):
        br.replace_with('\n')

    for block in soup.find_all(['p', 'div', 'h1', 'h2', 'h3', 'li']):
        block.insert_after('\n')

    for link in soup.find_all('a', href=True):
        link_text = link.get_text().strip()
        href = link['href']
        link.replace_with(f"{link_text} ({href})" if link_text and link_text != href else href)

    text = soup.get_text()
    text = re.sub(r'[ \t]+', ' ', text)
    text = re.sub(r'\n\s*\n+', '\n\n', text)
    return text.strip()


def render_contact_email(fields: Dict[str, Any], attachment_name: Optional[str] = None) -> RenderedEmail:
    html = _env.from_string(CONTACT_TEMPLATE).render(
        name=fields.get('name') or '',
        email=fields.get('email') or '',
        company=fields.get('company'),
        phone=fields.get('phone'),
        message=fields.get('message') or '',
        attachment_name=attachment_name,
    )
    return RenderedEmail(
        subject=f"New Contact Form Submission from {fields.get('name')}",
        html=html,
        text=html_to_text(html),
    )


def render_new_post_email(post: Dict[str, Any], site_url: str, signature: str) -> RenderedEmail:
    link = f"{site_url.rstrip('/')}/blog/{post['id']}"
    excerpt = Markup(_cleaner.clean(str(post.get('excerpt') or '')))
    html = _env.from_string(NEW_POST_TEMPLATE).render(
        title=post.get('title') or '',
        excerpt=excerpt,
        link=link,
        signature=signature,
    )
    return RenderedEmail(
        subject=f"New Blog Post: {post.get('title')}",
        html=html,
        text=html_to_text(html),
    )
