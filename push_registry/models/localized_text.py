import re

from pydantic import RootModel

_FALLBACK_LANGUAGE = "en-US"
_LANGUAGE_SEPARATOR = re.compile(r"[-_]")


class LocalizedText(RootModel[str | dict[str, str]]):
    """Text that is either language-neutral or keyed by language code."""

    def localize(self, *languages: str) -> str:
        content = self.root
        if isinstance(content, str):
            return content

        for language in (*languages, _FALLBACK_LANGUAGE):
            exact = content.get(language)
            if exact:
                return exact

            prefix = _LANGUAGE_SEPARATOR.split(language, maxsplit=1)[0]
            if prefix:
                prefixed = content.get(prefix)
                if prefixed:
                    return prefixed

        return next(iter(content.values()), "")

    def as_mapping(self) -> dict[str, str]:
        if isinstance(self.root, str):
            return {"en": self.root}
        return dict(self.root)
