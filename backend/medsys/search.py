import re

_NON_DIGITS = re.compile(r"\D")


def normalize_cpf(cpf):
    """Mantém só os dígitos do CPF, chave usada para achar o paciente."""
    return _NON_DIGITS.sub("", cpf or "")


def name_contains(name, term):
    """Busca por trecho do nome, sem diferenciar maiúsculas (autocompletar)."""
    if not term:
        return True
    return term.strip().lower() in (name or "").lower()
