"""Troubleshooting checklists shown when a diagnosis cannot be produced."""

from .models import ProviderKind

CHECKLISTS: dict[ProviderKind, tuple[str, ...]] = {
    ProviderKind.HOSTED: (
        "API key is correct (check the environment variable or plugin options)",
        "Network connection can reach the API endpoint (base URL)",
        "Model name is correct (e.g. glm-4, glm-4-plus)",
    ),
    ProviderKind.OPENAI: (
        "API key is correct",
        "Network connection is working",
        "The openai package is installed (pip install 'medic[openai]')",
    ),
    ProviderKind.LOCAL: (
        "The local model service is running (run: ollama serve)",
        "The model has been downloaded (run: ollama pull <model>)",
        "The base URL points at the local service (default http://localhost:11434)",
    ),
    ProviderKind.CUSTOM: (
        "The custom model object implements invoke(conversation)",
        "invoke returns text or an object with a content field",
        "Any service the custom model depends on is reachable",
    ),
    ProviderKind.UNKNOWN: (
        "The model configuration is correct",
        "Network connection is working",
    ),
}


def checklist_for(kind: ProviderKind) -> tuple[str, ...]:
    """Return the numbered checklist items for a provider kind."""
    items = CHECKLISTS.get(kind, CHECKLISTS[ProviderKind.UNKNOWN])
    return tuple(f"  {i}. {item}" for i, item in enumerate(items, 1))
