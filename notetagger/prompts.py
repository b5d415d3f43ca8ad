"""
Prompt construction for tagging requests.

The model is asked for plain text in a fixed two-line shape:

    Summary: <one or two sentences>
    Suggested tags: tag1, tag2, tag3

All structure is imposed here and re-checked by ``parsing``; the model
service itself has no output schema.
"""

from .config import TaggerConfig


# Closed set of literary-genre labels offered when genre detection is on
LITERARY_GENRES = (
    "poesia", "prosa_poetica", "diario", "ensayo", "relato", "cuento",
    "microcuento", "novela_corta", "cronica", "carta", "epistolario",
    "aforismo", "nota", "fragmento", "memorias", "autobiografia",
    "biografia", "testimonio", "dialogo", "monologo", "teatro_breve",
    "escena", "guion", "haiku", "tanka", "soneto", "oda", "elegia",
    "satira", "epigrama", "romance",
)

# Very long notes are truncated before being sent to a local model
MAX_CONTENT_CHARS = 50000


def build_instructions(config: TaggerConfig, vocabulary: list[str]) -> str:
    """
    Build the instruction part of the prompt (everything but the note).

    Args:
        config: Tag bounds, genre flag, summary language, custom instructions
        vocabulary: Thematic tags the model may choose from, listed verbatim

    Returns:
        Instruction text
    """
    lo, hi = config.min_tags, config.max_tags

    prompt = f"""You are an expert at analyzing and tagging markdown documents.

CRITICAL RULES:
- You MUST select between {lo} and {hi} THEMATIC tags
- Select ONLY the MOST IMPORTANT themes
- Do NOT list every tag that could apply
- Do NOT add explanations or justifications after tags
- Do NOT use parentheses or brackets with tags
- Do NOT invent tags that are not in the available list
- Think: "What are the {lo}-{hi} CORE topics of this text?\""""

    if config.detect_genre:
        prompt += f"""

LITERARY GENRE DETECTION (REQUIRED):
First, determine the literary genre of this text from these options:
{", ".join(LITERARY_GENRES)}

The genre tag is SEPARATE from the {lo}-{hi} thematic tags.
You should return: 1 genre tag + {lo}-{hi} thematic tags."""

    prompt += f"""

Available thematic tags: {", ".join(vocabulary)}

Your task:"""

    if config.detect_genre:
        prompt += f"""
1. First, identify the literary genre (REQUIRED - pick the closest match)
2. Then, select {lo}-{hi} THEMATIC tags (not counting the genre)
3. Write a brief 1-2 sentence summary in {config.language}
4. Return the genre tag FIRST, then the thematic tags"""
    else:
        prompt += f"""
1. Read the content carefully
2. Identify the {lo}-{hi} MOST IMPORTANT themes
3. Write a brief 1-2 sentence summary in {config.language}
4. Return ONLY the tag names without any explanations"""

    genre_slot = "genre_tag, " if config.detect_genre else ""
    prompt += f"""

IMPORTANT: Return tags EXACTLY as they appear in the available tags list.
Do NOT add explanations like "tag (because reason)" or "tag [justification]".

Format your response EXACTLY like this:
Summary: [your summary here]
Suggested tags: {genre_slot}tag1, tag2, tag3"""

    if config.custom_instructions:
        prompt += f"""

Additional Custom Instructions:
{config.custom_instructions}"""

    return prompt


def build_prompt(config: TaggerConfig, vocabulary: list[str], content: str) -> str:
    """Build the complete prompt: instructions, the note, and a format reminder."""
    truncated = content[:MAX_CONTENT_CHARS] if len(content) > MAX_CONTENT_CHARS else content
    return f"""{build_instructions(config, vocabulary)}

Content to analyze:
{truncated}

Provide your response in this format:
Summary: [your summary here]
Suggested tags: [tag1, tag2, tag3]"""
