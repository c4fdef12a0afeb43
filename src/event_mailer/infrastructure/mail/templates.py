from __future__ import annotations

_LAYOUT = """\
<div style="font-family: Arial, sans-serif; background-color: #f5f5f5; padding: 30px;">
  <div style="max-width: 600px; margin: auto; background: #ffffff; border-radius: 10px; overflow: hidden;">
    <div style="padding: 30px; color: #333;">
      {% block content %}{% endblock %}
      <p style="margin-top: 30px; color: #666; font-size: 14px;">
        If you have any questions, please reply to this email.
      </p>
    </div>
    <div style="background-color: #f9fafb; padding: 20px; text-align: center; color: #666; font-size: 12px;">
      <p>&copy; {{ year }} {{ organisation }}. All rights reserved.</p>
    </div>
  </div>
</div>
"""

_EVALUATION_HTML = """\
{% extends "layout.html" %}
{% block content %}
<h2>Hi, {{ full_name }}!</h2>
<p>
  Congratulations on completing <strong>{{ event_name }}</strong>.<br/><br/>
  We would like to invite you to complete an evaluation of the event.
  Once done, you will receive another email with your digital certificate.
</p>
<div style="text-align: center; margin-top: 25px;">
  <a href="{{ evaluation_link }}"
     style="background-color: #1e1b4b; color: #ffffff; padding: 12px 25px;
            border-radius: 6px; text-decoration: none; font-weight: bold;">
    Take Evaluation
  </a>
</div>
{% endblock %}
"""

_EVALUATION_TEXT = """\
Hi, {{ full_name }}!

Congratulations on completing {{ event_name }}.
Please take the evaluation here: {{ evaluation_link }}
"""

_CERTIFICATE_HTML = """\
{% extends "layout.html" %}
{% block content %}
<h2>Congratulations, {{ full_name }}!</h2>
<p>
  Please find attached your <strong>Certificate of {{ label }}</strong>
  for <strong>{{ event_name }}</strong>{% if event_date %} held on {{ event_date }}{% endif %}.
</p>
{% endblock %}
"""

_CERTIFICATE_TEXT = """\
Congratulations, {{ full_name }}!

Please find attached your Certificate of {{ label }} for {{ event_name }}.
"""

TEMPLATES: dict[str, str] = {
    "layout.html": _LAYOUT,
    "evaluation.html": _EVALUATION_HTML,
    "evaluation.txt": _EVALUATION_TEXT,
    "certificate.html": _CERTIFICATE_HTML,
    "certificate.txt": _CERTIFICATE_TEXT,
}
