"""
Consolidación: agrupa pedidos pendientes de una revendedora en un envío a Nadin.
Calcula totales, arma el CSV para el proveedor y marca los pedidos como enviados.
"""
import io
import json
import logging
from typing import List, Optional

import pandas as pd

from revendedoras import db
from revendedoras.models import ESTADO_CANCELADO, ESTADO_ENVIADO, ESTADO_PENDIENTE, Consolidacion, Pedido
from revendedoras.services.pricing import format_currency

logger = logging.getLogger(__name__)

CSV_COLUMNS = [
    "cliente", "telefono", "product_id", "variant_id", "sku", "marca", "producto",
    "talle", "color", "cantidad", "precio_mayorista_unit", "precio_mayorista_total",
    "precio_revendedora_unit", "precio_revendedora_total", "nota",
]


class ConsolidationError(Exception):
    def __init__(self, message: str, code: int = 400):
        super().__init__(message)
        self.code = code


def build_csv(pedidos: List[Pedido]) -> str:
    """Una fila por línea de pedido, en el formato que recibe el proveedor."""
    rows = []
    for pedido in pedidos:
        for linea in pedido.lineas:
            rows.append({
                "cliente": pedido.cliente,
                "telefono": pedido.telefono,
                "product_id": linea.product_id,
                "variant_id": linea.variant_id,
                "sku": linea.sku,
                "marca": linea.brand,
                "producto": linea.name,
                "talle": linea.talle,
                "color": linea.color,
                "cantidad": linea.qty,
                "precio_mayorista_unit": linea.mayorista,
                "precio_mayorista_total": linea.mayorista * linea.qty,
                "precio_revendedora_unit": linea.venta,
                "precio_revendedora_total": linea.venta * linea.qty,
                "nota": pedido.nota or "",
            })
    buf = io.StringIO()
    pd.DataFrame(rows, columns=CSV_COLUMNS).to_csv(buf, index=False)
    return buf.getvalue()


def create_consolidacion(
    user_id: int,
    pedido_ids: List[int],
    forma_pago: str,
    tipo_envio: str,
    transporte_nombre: Optional[str] = None,
    descuento_total: float = 0,
) -> Consolidacion:
    if not pedido_ids:
        raise ConsolidationError("pedidoIds es requerido")
    if not forma_pago or not tipo_envio:
        raise ConsolidationError("formaPago y tipoEnvio son requeridos")

    ids = sorted({int(i) for i in pedido_ids})
    pedidos = (
        Pedido.query.filter(Pedido.id.in_(ids), Pedido.user_id == user_id)
        .order_by(Pedido.id.asc())
        .all()
    )
    if len(pedidos) != len(ids):
        missing = sorted(set(ids) - {p.id for p in pedidos})
        raise ConsolidationError(f"Pedidos no encontrados: {missing}", 404)
    cancelados = [p.id for p in pedidos if p.estado == ESTADO_CANCELADO]
    if cancelados:
        raise ConsolidationError(f"No se pueden consolidar pedidos cancelados: {cancelados}")
    # Solo pendientes: un pedido entregado y cobrado ya cuenta como venta completada
    no_pendientes = [p.id for p in pedidos if p.estado != ESTADO_PENDIENTE]
    if no_pendientes:
        raise ConsolidationError(f"Solo se pueden consolidar pedidos pendientes: {no_pendientes}")

    total_mayorista = sum(p.total_mayorista for p in pedidos)
    total_venta = sum(p.total_venta for p in pedidos)
    ganancia = total_venta - descuento_total - total_mayorista

    consolidacion = Consolidacion(
        user_id=user_id,
        pedido_ids=json.dumps(ids),
        forma_pago=forma_pago,
        tipo_envio=tipo_envio,
        transporte_nombre=transporte_nombre,
        total_mayorista=total_mayorista,
        total_venta=total_venta,
        descuento_total=descuento_total,
        ganancia=ganancia,
        csv_content=build_csv(pedidos),
    )
    try:
        db.session.add(consolidacion)
        for p in pedidos:
            p.estado = ESTADO_ENVIADO
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise

    logger.info(
        "Consolidación %s user %s: %d pedidos, venta %s, ganancia %s",
        consolidacion.id, user_id, len(pedidos), format_currency(total_venta), format_currency(ganancia),
    )
    return consolidacion


def register_payment(consolidacion: Consolidacion, costo_real: float) -> Consolidacion:
    """Registra lo que realmente se pagó a Nadin y calcula la ganancia neta."""
    total_final = consolidacion.total_venta - consolidacion.descuento_total
    consolidacion.costo_real = costo_real
    consolidacion.ganancia_neta = total_final - costo_real
    db.session.commit()
    return consolidacion


def consolidacion_to_dict(c: Consolidacion, include_csv: bool = False) -> dict:
    data = {
        "id": c.id,
        "pedidoIds": json.loads(c.pedido_ids or "[]"),
        "formaPago": c.forma_pago,
        "tipoEnvio": c.tipo_envio,
        "transporteNombre": c.transporte_nombre,
        "totalMayorista": c.total_mayorista,
        "totalVenta": c.total_venta,
        "descuentoTotal": c.descuento_total,
        "ganancia": c.ganancia,
        "costoReal": c.costo_real,
        "gananciaNeta": c.ganancia_neta,
        "enviadoAt": c.enviado_at.isoformat() if c.enviado_at else None,
    }
    if include_csv:
        data["csv"] = c.csv_content
    return data
