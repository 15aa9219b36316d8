"""Prompt templates for the code generator and code examiner assistants."""


def generator_prompt(prompt: str, uml_code: str | None = None) -> str:
    """Build the code generator prompt, editing ``uml_code`` when one is given."""
    if uml_code:
        prefix = (
            f"Here is my current code:\n{uml_code}\n\n"
            "Make changes to the PlantUML code according to the following prompt:\n"
        )
    else:
        prefix = "Generate PlantUML code according to the following prompt:\n"
    return prefix + prompt


def examiner_prompt(uml_code: str, query: str) -> str:
    """Build the code examiner prompt."""
    return f"Here is my current code:\n{uml_code}\n\nAnswer this question based on the code:\n{query}"
