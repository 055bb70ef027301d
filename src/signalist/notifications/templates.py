"""HTML email templates.

Placeholders use {{name}} syntax and are filled with str.replace so the
CSS braces stay untouched.
"""

WELCOME_EMAIL_SUBJECT = "Welcome to Signalist!"
WELCOME_EMAIL_TEXT = "Welcome to Signalist! We're excited to have you on board."

NEWS_SUMMARY_EMAIL_SUBJECT = "Today's Market News Summary - {{date}}"

_BASE_STYLE = """
  body { margin: 0; padding: 0; background-color: #050505; font-family: -apple-system, \
BlinkMacSystemFont, 'Segoe UI', Roboto, Helvetica, Arial, sans-serif; }
  .container { max-width: 600px; margin: 0 auto; background-color: #141414; \
border: 1px solid #30333A; border-radius: 8px; padding: 32px; color: #CCDADC; }
  h1 { color: #FDD458; font-size: 24px; margin: 0 0 16px 0; }
  h3 { color: #FDD458; font-size: 18px; margin: 24px 0 8px 0; }
  p, li { font-size: 15px; line-height: 1.6; color: #CCDADC; }
  a { color: #FDD458; }
  .footer { margin-top: 32px; font-size: 12px; color: #6B7280; text-align: center; }
"""

WELCOME_EMAIL_TEMPLATE = (
    """<!DOCTYPE html>
<html lang="en">
<head>
<meta charset="UTF-8">
<meta name="viewport" content="width=device-width, initial-scale=1.0">
<title>Welcome to Signalist</title>
<style>"""
    + _BASE_STYLE
    + """</style>
</head>
<body>
<div class="container">
  <h1>Welcome aboard, {{name}}</h1>
  <p>{{intro}}</p>
  <p>Here is what you can do right away:</p>
  <ul>
    <li>Set up your watchlist to follow the stocks you care about</li>
    <li>Get a daily AI summary of the news for your watchlist</li>
    <li>Stay on top of market moves without the noise</li>
  </ul>
  <div class="footer">Signalist &middot; You're receiving this email because you signed up.</div>
</div>
</body>
</html>"""
)

NEWS_SUMMARY_EMAIL_TEMPLATE = (
    """<!DOCTYPE html>
<html lang="en">
<head>
<meta charset="UTF-8">
<meta name="viewport" content="width=device-width, initial-scale=1.0">
<title>Market News Summary</title>
<style>"""
    + _BASE_STYLE
    + """</style>
</head>
<body>
<div class="container">
  <h1>Market News Summary</h1>
  <p>{{date}}</p>
  {{newsContent}}
  <div class="footer">Signalist &middot; Not investment advice.</div>
</div>
</body>
</html>"""
)


def render(template: str, **values: str) -> str:
    """Fill {{key}} placeholders in a template."""
    for key, value in values.items():
        template = template.replace("{{" + key + "}}", value)
    return template
