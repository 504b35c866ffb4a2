"""
HTML pages for the browser front end.

The capture form posts back to ``/``; the results page reads the stored
record and offers edit and export actions. Both pages are plain strings
built here so the app has no template dependency.
"""

from __future__ import annotations

from html import escape
from typing import Optional

from ..models.errors import PortfolioError, ValidationError
from ..models.portfolio import PortfolioRecord
from ..services.capture_service import FormDraft
from ..services.preview_service import (
    build_draft_preview,
    build_preview,
    render_preview_html,
)

PAGE_STYLE = """
body { font-family: system-ui, sans-serif; margin: 0; background: #f5f6f8; color: #1f2933; }
main { max-width: 960px; margin: 0 auto; padding: 2rem 1rem; }
.layout { display: grid; grid-template-columns: 1fr 1fr; gap: 2rem; }
form label { display: block; margin-top: 0.75rem; font-weight: 600; }
form input, form textarea { width: 100%; box-sizing: border-box; padding: 0.4rem; }
fieldset { margin-top: 1rem; border: 1px solid #d2d6dc; }
.errors { background: #fde8e8; border: 1px solid #f8b4b4; padding: 0.75rem 1rem; }
.suggestion { background: #e1effe; border: 1px solid #a4cafe; padding: 0.75rem; margin-top: 0.5rem; }
.preview { background: #fff; border-radius: 8px; padding: 1.5rem; }
.preview-draft { opacity: 0.9; }
.preview-header { display: flex; justify-content: space-between; align-items: center; }
.avatar { width: 96px; height: 96px; border-radius: 50%; object-fit: cover; }
.avatar-fallback { display: flex; align-items: center; justify-content: center; background: #cbd2d9; font-size: 2rem; }
.chip { display: inline-block; background: #e4e7eb; border-radius: 12px; padding: 0.1rem 0.6rem; margin: 0.15rem; }
.muted { color: #616e7c; }
.actions { margin-top: 1.5rem; display: flex; gap: 0.75rem; }
"""

AI_SCRIPT = """
async function postJson(url, body) {
  const response = await fetch(url, {
    method: "POST",
    headers: {"Content-Type": "application/json"},
    body: JSON.stringify(body),
  });
  const data = await response.json();
  if (!response.ok) { throw new Error(data.detail || response.statusText); }
  return data;
}

// Highest request token shown per suggestion box.
const shownTokens = {};

function showSuggestion(target, text, token) {
  if (token < (shownTokens[target] || 0)) { return; }
  shownTokens[target] = token;
  const box = document.getElementById(target);
  box.hidden = false;
  box.querySelector(".suggestion-text").textContent = text;
}

async function enhanceBio() {
  const form = document.getElementById("portfolio-form");
  const names = Array.from(form.querySelectorAll("[name=project_name]"));
  const profile = {
    name: form.name.value,
    age: form.age.value,
    occupation: form.occupation.value,
    contactInformation: form.contactInformation.value,
    shortBio: form.shortBio.value,
    skills: form.skills.value,
    projects: Array.from(form.querySelectorAll("[name=project_description]")).map(
      (el, index) => ({name: names[index] ? names[index].value : "", description: el.value})
    ),
  };
  try {
    const data = await postJson("/api/ai/enhance-bio", profile);
    if (data.applied) { showSuggestion("bio-suggestion", data.enhancedBio, data.requestToken); }
  } catch (err) {
    alert("Could not enhance bio: " + err.message);
  }
}

async function suggestProjects() {
  const fields = Array.from(document.querySelectorAll("[name=project_description]"));
  try {
    const data = await postJson("/api/ai/suggest-project-descriptions", {
      projectDescriptions: fields.map(el => el.value),
    });
    if (data.applied) { showSuggestion("projects-suggestion", data.improvedProjectDescriptions.join("\\n\\n"), data.requestToken); }
  } catch (err) {
    alert("Could not suggest descriptions: " + err.message);
  }
}

function acceptBio() {
  const box = document.getElementById("bio-suggestion");
  document.getElementById("portfolio-form").shortBio.value = box.querySelector(".suggestion-text").textContent;
  box.hidden = true;
}

async function acceptProjects() {
  const response = await fetch("/api/ai/suggestions");
  const data = await response.json();
  const fields = Array.from(document.querySelectorAll("[name=project_description]"));
  (data.projects || []).forEach((text, index) => { if (fields[index]) { fields[index].value = text; } });
  document.getElementById("projects-suggestion").hidden = true;
}
"""


def _page(title: str, body: str, script: str = "") -> str:
    script_tag = f"<script>{script}</script>" if script else ""
    return f"""<!DOCTYPE html>
<html lang="en">
<head>
<meta charset="utf-8">
<meta name="viewport" content="width=device-width, initial-scale=1">
<title>{escape(title)}</title>
<style>{PAGE_STYLE}</style>
</head>
<body>
<main>
{body}
</main>
{script_tag}
</body>
</html>
"""


def _error_list(error: Optional[PortfolioError]) -> str:
    if error is None:
        return ""
    items = []
    if isinstance(error, ValidationError):
        items.extend(f"<li>{escape(name)} is required</li>" for name in error.missing_fields)
        items.extend(
            f"<li>{escape(name)} {escape(reason)}</li>"
            for name, reason in error.invalid_fields.items()
        )
    if not items:
        items.append(f"<li>{escape(str(error))}</li>")
    return f'<div class="errors" role="alert"><ul>{"".join(items)}</ul></div>'


def _text_input(label: str, name: str, value: str, input_type: str = "text") -> str:
    return (
        f'<label for="{name}">{escape(label)}</label>'
        f'<input id="{name}" name="{name}" type="{input_type}" value="{escape(value)}">'
    )


def _project_fields(draft: FormDraft) -> str:
    blocks = []
    for index, project in enumerate(draft.projects, start=1):
        blocks.append(
            f"""<fieldset class="project-fields">
  <legend>Project {index}</legend>
  <label>Project name</label>
  <input name="project_name" value="{escape(project.name)}">
  <label>Project description</label>
  <textarea name="project_description" rows="3">{escape(project.description)}</textarea>
</fieldset>"""
        )
    return "\n".join(blocks)


def render_capture_page(
    draft: FormDraft,
    *,
    error: Optional[PortfolioError] = None,
    ai_enabled: bool = False,
) -> str:
    """The capture form, pre-filled from ``draft``, next to a live preview."""
    ai_buttons = ""
    if ai_enabled:
        ai_buttons = """
<div class="actions">
  <button type="button" onclick="enhanceBio()">Enhance bio with AI</button>
  <button type="button" onclick="suggestProjects()">Improve project descriptions</button>
</div>
<div id="bio-suggestion" class="suggestion" hidden>
  <p class="suggestion-text"></p>
  <button type="button" onclick="acceptBio()">Use this bio</button>
</div>
<div id="projects-suggestion" class="suggestion" hidden>
  <p class="suggestion-text"></p>
  <button type="button" onclick="acceptProjects()">Use these descriptions</button>
</div>"""

    existing_photo = ""
    if draft.photo:
        existing_photo = f'<input type="hidden" name="existing_photo" value="{escape(draft.photo)}">'

    form = f"""<form id="portfolio-form" method="post" action="/" enctype="multipart/form-data">
{_error_list(error)}
{_text_input("Name", "name", draft.name)}
{_text_input("Age", "age", draft.age, "number")}
{_text_input("Occupation", "occupation", draft.occupation)}
{_text_input("Contact information", "contactInformation", draft.contact_information)}
<label for="shortBio">Short bio</label>
<textarea id="shortBio" name="shortBio" rows="4">{escape(draft.short_bio)}</textarea>
{_text_input("Skills (comma separated)", "skills", draft.skills)}
{_project_fields(draft)}
<button type="submit" name="action" value="add_project">Add project</button>
<label for="photo">Photo</label>
<input id="photo" name="photo" type="file" accept="image/*">
{existing_photo}
{ai_buttons}
<div class="actions">
  <button type="submit" name="action" value="submit">Create portfolio</button>
</div>
</form>"""

    body = f"""<h1>Build your portfolio</h1>
<div class="layout">
<section>{form}</section>
<section>{render_preview_html(build_draft_preview(draft))}</section>
</div>"""
    return _page("Portfolio Builder", body, AI_SCRIPT if ai_enabled else "")


def render_results_page(record: PortfolioRecord) -> str:
    """The saved portfolio with edit and export actions."""
    preview = build_preview(record)
    body = f"""<h1>{escape(preview.name)}'s portfolio</h1>
{render_preview_html(preview)}
<div class="actions">
  <a href="/">Edit details</a>
  <a href="/api/portfolio/export/html" download>Download HTML</a>
  <a href="/api/portfolio/export/pdf" download>Download PDF</a>
</div>"""
    return _page(f"{preview.name} - Portfolio", body)
