import logging

logger = logging.getLogger(__name__)

IN_STOCK = "in stock"
LOW_STOCK = "low stock"
ORDER_REQUESTED = "order requested"

LOW_STOCK_THRESHOLD = 20

DEFAULT_CATEGORY = "General"
DEFAULT_FORM = "Other"


def stock_status(stock):
    """Status derivado do estoque. Chamado em toda gravação de medicamento."""
    stock = int(stock or 0)
    if stock <= 0:
        return ORDER_REQUESTED
    if stock < LOW_STOCK_THRESHOLD:
        return LOW_STOCK
    return IN_STOCK


def is_low_stock(medication):
    return int(medication.get("stock") or 0) < LOW_STOCK_THRESHOLD


def normalize_name(name):
    return (name or "").strip().lower()


def reconcile_catalog(new_items, known_catalog, lookup=None):
    """
    Decide quais itens de uma receita ainda não existem no catálogo de
    medicamentos e devolve as entradas a criar, com campos provisórios.

    Nomes são comparados sem espaços nas pontas e sem diferenciar
    maiúsculas. ``lookup``, quando informado, consulta o catálogo
    persistido pelo nome antes de emitir a entrada; um nome encontrado lá
    é tratado como conhecido.
    """
    known = {normalize_name(m.get("name")) for m in known_catalog}
    to_create = []

    for item in new_items:
        name = (item.get("name") or "").strip()
        if not name:
            continue

        normalized = name.lower()
        if normalized in known:
            continue

        if lookup is not None:
            try:
                existing = lookup(name)
            except Exception:
                # segue como não encontrado; os próximos itens não são afetados
                logger.warning("Falha ao consultar medicamento %r no catálogo", name, exc_info=True)
                existing = None
            if existing:
                known.add(normalized)
                continue

        to_create.append({
            "name": name,
            "description": item.get("dosage") or "",
            "category": DEFAULT_CATEGORY,
            "form": DEFAULT_FORM,
            "stock": 0,
            "price": 0,
            "status": LOW_STOCK,
        })
        known.add(normalized)

    return to_create
