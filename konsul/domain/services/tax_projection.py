# konsul/domain/services/tax_projection.py
"""
Proyección fiscal simplificada para Panamá (ITBMS e ISR).

Es una estimación ilustrativa, no un cálculo certificado: toda proyección
lleva el aviso `DISCLAIMER` y así debe mostrarse al usuario.
"""
from datetime import datetime
from typing import Iterable, List, Optional, Tuple

from konsul.domain.models.document import Document, utc_now
from konsul.domain.models.report import EntityType, FiscalConfig, TaxInsight, TaxProjection, TimeRange
from konsul.domain.services.cash_flow import range_bounds
from konsul.domain.services.collection import collected_amount, embedded_tax_ratio

DISCLAIMER = (
    "Estimación ilustrativa y no oficial. No sustituye una declaración ante la DGI "
    "ni la asesoría de un contador público autorizado."
)

# ITBMS que se asume incluido en cada gasto (crédito fiscal estimado).
EXPENSE_ITBMS_RATE = 0.07

# Persona natural: tramos anuales del ISR
NATURAL_EXEMPT_LIMIT = 11000.0
NATURAL_MIDDLE_LIMIT = 50000.0
NATURAL_MIDDLE_RATE = 0.15
NATURAL_TOP_RATE = 0.25
NATURAL_TOP_BASE = (NATURAL_MIDDLE_LIMIT - NATURAL_EXEMPT_LIMIT) * NATURAL_MIDDLE_RATE  # 5,850

# Persona jurídica
JURIDICA_RATE = 0.25
CAIR_GROSS_THRESHOLD = 1500000.0
CAIR_RATE = 0.0467

# Umbrales de los avisos
ITBMS_DUE_ALERT = 500.0
NEAR_TOP_BRACKET_MARGIN = 5000.0

MONTHS_IN_PERIOD = {
    TimeRange.LAST_30_DAYS: 1,
    TimeRange.LAST_90_DAYS: 3,
    TimeRange.LAST_12_MONTHS: 12,
}

AVG_DAYS_PER_MONTH = 365.25 / 12


def months_in_period(
    time_range: TimeRange,
    start: Optional[datetime] = None,
    end: Optional[datetime] = None,
) -> float:
    if time_range in MONTHS_IN_PERIOD:
        return float(MONTHS_IN_PERIOD[time_range])
    lower, upper = range_bounds(time_range, utc_now(), start, end)
    # Un rango personalizado de pocos días se proyecta como un mes completo.
    return max((upper - lower).total_seconds() / 86400 / AVG_DAYS_PER_MONTH, 1.0)


def annualize(period_value: float, months: float) -> float:
    return period_value / months * 12


def natural_isr(annual_net: float) -> Tuple[float, str]:
    if annual_net > NATURAL_MIDDLE_LIMIT:
        return (annual_net - NATURAL_MIDDLE_LIMIT) * NATURAL_TOP_RATE + NATURAL_TOP_BASE, "Escalonado 25%"
    if annual_net > NATURAL_EXEMPT_LIMIT:
        return (annual_net - NATURAL_EXEMPT_LIMIT) * NATURAL_MIDDLE_RATE, "Escalonado 15%"
    return 0.0, "Exento (<11k)"


def juridica_isr(annual_net: float, annual_gross: float) -> Tuple[float, str, bool]:
    regular = max(annual_net, 0.0) * JURIDICA_RATE
    if annual_gross > CAIR_GROSS_THRESHOLD:
        alternative = annual_gross * CAIR_RATE
        if alternative > regular:
            return alternative, "CAIR 4.67% (Jurídica)", True
    return regular, "25% (Jurídica)", False


def _insights(
    entity_type: EntityType,
    itbms_net: float,
    annual_net: float,
    annual_gross: float,
    has_expenses: bool,
) -> List[TaxInsight]:
    insights = []
    if itbms_net > ITBMS_DUE_ALERT:
        insights.append(TaxInsight(
            code="ITBMS_DUE",
            severity="warning",
            message=f"El saldo de ITBMS por pagar supera ${ITBMS_DUE_ALERT:,.0f}. Reserva ese monto antes de la declaración.",
        ))
    elif itbms_net < 0:
        insights.append(TaxInsight(
            code="ITBMS_CREDIT",
            severity="info",
            message="Tienes crédito fiscal de ITBMS a favor en este periodo.",
        ))

    if entity_type == EntityType.NATURAL:
        if annual_net <= NATURAL_EXEMPT_LIMIT:
            insights.append(TaxInsight(
                code="ISR_EXEMPT",
                severity="info",
                message="Tu utilidad anual proyectada está dentro del tramo exento de ISR.",
            ))
        elif annual_net > NATURAL_MIDDLE_LIMIT:
            insights.append(TaxInsight(
                code="ISR_TOP_BRACKET",
                severity="warning",
                message="Tu utilidad anual proyectada tributa en el tramo del 25%.",
            ))
        elif annual_net >= NATURAL_MIDDLE_LIMIT - NEAR_TOP_BRACKET_MARGIN:
            insights.append(TaxInsight(
                code="ISR_NEAR_TOP_BRACKET",
                severity="warning",
                message="Te acercas al tramo del 25% de ISR. Revisa tus gastos deducibles.",
            ))
    elif annual_gross > CAIR_GROSS_THRESHOLD:
        insights.append(TaxInsight(
            code="CAIR",
            severity="warning",
            message="Los ingresos brutos proyectados superan $1.5M: aplica el Cálculo Alterno (CAIR).",
        ))

    if has_expenses:
        insights.append(TaxInsight(
            code="EXPENSE_ITBMS_ESTIMATED",
            severity="info",
            message="El ITBMS de los gastos se estima con una tasa fija del 7%.",
        ))
    return insights


def project_taxes(
    documents: Iterable[Document],
    fiscal_config: FiscalConfig,
    time_range: TimeRange,
    start: Optional[datetime] = None,
    end: Optional[datetime] = None,
) -> TaxProjection:
    gross_collected = 0.0
    itbms_collected = 0.0
    expenses_total = 0.0
    itbms_paid = 0.0
    has_expenses = False

    for doc in documents:
        if doc.is_invoice:
            collected = collected_amount(doc)
            if collected > 0:
                gross_collected += collected
                itbms_collected += collected * embedded_tax_ratio(doc)
        elif doc.is_expense:
            has_expenses = True
            expenses_total += doc.total
            itbms_paid += doc.total - doc.total / (1 + EXPENSE_ITBMS_RATE)

    months = months_in_period(time_range, start, end)
    period_revenue = gross_collected - itbms_collected
    period_net = period_revenue - (expenses_total - itbms_paid)
    annual_revenue = annualize(period_revenue, months)
    annual_net = annualize(period_net, months)
    itbms_net = itbms_collected - itbms_paid

    cair_applied = False
    if fiscal_config.entity_type == EntityType.JURIDICA:
        isr, bracket, cair_applied = juridica_isr(annual_net, annual_revenue)
    else:
        isr, bracket = natural_isr(annual_net)

    return TaxProjection(
        entity_type=fiscal_config.entity_type,
        months_in_period=months,
        itbms_collected=itbms_collected,
        itbms_paid=itbms_paid,
        itbms_net=itbms_net,
        period_revenue=period_revenue,
        period_net_profit=period_net,
        annual_revenue=annual_revenue,
        annual_net_profit=annual_net,
        estimated_isr=isr,
        isr_bracket=bracket,
        cair_applied=cair_applied,
        insights=_insights(fiscal_config.entity_type, itbms_net, annual_net, annual_revenue, has_expenses),
        disclaimer=DISCLAIMER,
    )
