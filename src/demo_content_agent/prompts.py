"""Prompt builders."""

from __future__ import annotations

import json
from typing import Any, Dict, Iterable, List

DEFAULT_TITLES_INSTRUCTIONS = (
    "Invent a plausible site topic and style yourself (blog, business, portfolio, etc.) "
    "and keep everything internally consistent."
)
DEFAULT_POST_INSTRUCTIONS = "Use clear, natural English and make it look like a realistic website."
DEFAULT_TAXONOMY_INSTRUCTIONS = "Organize posts into logical topic clusters as you see fit."


def build_titles_prompt(
    posts: int,
    pages: int,
    instructions: str,
    generate_images: bool = True,
    site_name: str = "",
    site_description: str = "",
) -> str:
    if not (instructions or "").strip():
        instructions = DEFAULT_TITLES_INSTRUCTIONS

    lines = ["You are an assistant that generates dummy content structures for a WordPress site.", ""]
    if site_name.strip():
        lines.append(f"Site name: {site_name}")
    if site_description.strip():
        lines.append(f"Site description: {site_description}")
    lines.append(f"User instructions: {instructions}")
    lines.append("")
    lines.append('Generate a JSON object with two arrays: "posts" and "pages".')
    lines.append(f"- Generate exactly {posts} post titles and {pages} page titles.")
    if generate_images:
        lines.append(
            '- For posts, include taxonomy and image cues: {"title": "...", "categories": ["..."], '
            '"tags": ["..."], "illustration_description": "..."}.'
        )
    else:
        lines.append(
            '- For posts, include taxonomy cues only: {"title": "...", "categories": ["..."], "tags": ["..."]}.'
        )
    lines.append('- For pages, only include the title object: {"title": "..."}.')
    lines.append("- Titles must be unique and coherent within the same site.")
    lines.append(
        "- Categories are broad, reusable site topics (aim for 2-6 across all posts). "
        "Keep names short and human-friendly."
    )
    lines.append("- Tags are more specific topics per post (aim for 3-7 tags each) and reuse tags where sensible.")
    if generate_images:
        lines.append(
            '- "illustration_description" is a vivid, single-sentence visual idea for a safe-for-work '
            "featured image aligned with the post."
        )
    lines.append("")
    lines.append("Return ONLY valid JSON, without markdown code fences or commentary.")
    return "\n".join(lines)


_BLOCK_EXAMPLE = (
    "<!-- wp:heading -->\n<h2 class=\"wp-block-heading\">Section Title</h2>\n<!-- /wp:heading -->\n\n"
    "<!-- wp:paragraph -->\n<p>This is a paragraph with <strong>bold text</strong> and <em>italic text</em>.</p>\n"
    "<!-- /wp:paragraph -->\n\n"
    "<!-- wp:list -->\n<ul class=\"wp-block-list\"><!-- wp:list-item -->\n<li>First item</li>\n<!-- /wp:list-item -->\n\n"
    "<!-- wp:list-item -->\n<li>Second item</li>\n<!-- /wp:list-item --></ul>\n<!-- /wp:list -->\n"
)


def build_post_prompt(title: str, post_type: str, instructions: str) -> str:
    if not (instructions or "").strip():
        instructions = DEFAULT_POST_INSTRUCTIONS

    parts = [
        f'You are generating dummy content for a WordPress {post_type} titled: "{title}".\n\n',
        f"User instructions for the overall site: {instructions}\n\n",
    ]
    if post_type == "page":
        parts.append("Generate content suitable for a page (about, contact, services, etc.).\n")
        parts.append("- Around 4-6 paragraphs with 2-3 headings.\n")
    else:
        parts.append("Generate content suitable for a blog post.\n")
        parts.append("- At least 10 paragraphs with multiple headings, lists, quotes, and rich structure.\n")

    parts.extend(
        [
            "- Format the content as WordPress Gutenberg blocks using HTML comment delimiters.\n",
            "- Each block starts with <!-- wp:blocktype --> and ends with <!-- /wp:blocktype -->.\n",
            "- Available blocks: wp:paragraph, wp:heading, wp:list, wp:list-item, wp:quote, wp:code, "
            "wp:image, wp:separator, wp:buttons, wp:button, wp:columns, wp:column, wp:group, etc.\n",
            '- For headings, use level 2 or 3: <!-- wp:heading --> or <!-- wp:heading {"level":3} -->.\n',
            "- For lists, wrap each item: <!-- wp:list-item --><li>Item text</li><!-- /wp:list-item -->.\n",
            "- For quotes, nest a paragraph inside: <!-- wp:quote --><blockquote class=\"wp-block-quote\">"
            "<!-- wp:paragraph --><p>Quote text</p><!-- /wp:paragraph --></blockquote><!-- /wp:quote -->.\n",
            "- Use proper CSS classes like wp-block-heading, wp-block-list, wp-block-quote, wp-block-code, etc.\n",
            "- Do NOT include <html>, <body>, <head>, or the title as an <h1>.\n",
            "- Mix different block types naturally (paragraphs, headings, lists, quotes, code blocks where "
            "appropriate).\n\n",
            "Example format:\n",
            _BLOCK_EXAMPLE,
            "\nReturn ONLY the Gutenberg block markup, without JSON wrappers, markdown code fences, or explanations.",
        ]
    )
    return "".join(parts)


def build_taxonomy_prompt(
    items: Iterable[Dict[str, Any]],
    create_categories: bool,
    create_tags: bool,
    instructions: str,
) -> str:
    titles: List[str] = [str(item["title"]) for item in items if item.get("title")]
    titles_json = json.dumps(titles, ensure_ascii=False)

    if not (instructions or "").strip():
        instructions = DEFAULT_TAXONOMY_INSTRUCTIONS

    prompt = "You are designing categories and tags for a WordPress blog.\n\n"
    prompt += f"User instructions: {instructions}\n\n"
    prompt += f"Here is the list of post titles as a JSON array:\n{titles_json}\n\n"
    prompt += "Create a coherent taxonomy for these posts.\n"
    if create_categories:
        prompt += "- Choose a sensible number of categories (usually 2-6) and group posts accordingly.\n"
    if create_tags:
        prompt += "- Choose a sensible number of tags (roughly 5-15) for detailed topics.\n"
    prompt += "- Use broad topics for categories and more specific concepts for tags.\n\n"

    prompt += "Return a JSON object containing only the sections you generate (categories and/or tags). "
    prompt += "Example shape:\n{\n"
    if create_categories:
        prompt += '  "categories": [\n'
        prompt += '    {"name": "...", "slug": "...", "description": "...", "posts": ["Post title 1", "Post title 2"]}\n'
        prompt += "  ],\n" if create_tags else "  ]\n"
    if create_tags:
        prompt += '  "tags": [\n'
        prompt += '    {"name": "...", "slug": "...", "description": "", "posts": ["Post title 1"]}\n'
        prompt += "  ]\n"
    prompt += "}\n\n"
    prompt += "Rules:\n"
    prompt += "- Every title can belong to multiple tags, but usually 1-3 categories total across all posts.\n"
    prompt += "- Use URL-friendly slugs (lowercase, hyphens, no special characters).\n"
    prompt += "- Descriptions are short (1-2 sentences) and optional.\n\n"
    prompt += "Return ONLY valid JSON without markdown code fences or commentary."
    return prompt


def build_image_prompt(post_type: str, title: str, illustration: str = "", instructions: str = "") -> str:
    prompt = f'Featured image for a WordPress {post_type} titled "{title}".'
    if illustration:
        prompt += f" Visual direction: {illustration}"
    if instructions:
        prompt += f" Site context: {instructions}"
    return prompt
