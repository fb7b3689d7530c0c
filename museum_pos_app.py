"""Streamlit app for museum front-desk sales and the daily report."""

from __future__ import annotations

import html

import pandas as pd
import streamlit as st

from museum_pos import (
    Admission,
    AdmissionKind,
    DEFAULT_SALES_TAX_PERCENT,
    DailySummary,
    Donation,
    GiftShopSale,
    Membership,
    MembershipKind,
    PaymentMethod,
    POSError,
    POSStore,
    StoreConfig,
    ValidationError,
    daily_summary,
    format_currency,
)
from museum_pos.logging_utils import setup_logger

PAYMENT_OPTIONS: list[PaymentMethod | None] = [None, *PaymentMethod]


@st.cache_resource
def _get_store() -> POSStore:
    config = StoreConfig.from_env()
    setup_logger("museum_pos", config.log_level, config.storage_location / "logs")
    return POSStore(config).open()


def _inject_styles() -> None:
    st.markdown(
        """
        <style>
          :root {
            --pos-ink-700: #2d2a26;
            --pos-brass-600: #a66a1f;
            --pos-brass-500: #c58a3a;
            --pos-paper-100: #f6f2ea;
            --pos-card: #ffffff;
            --pos-muted: #5b554d;
          }

          .stApp {
            background: linear-gradient(170deg, var(--pos-paper-100) 0%, #fbf9f4 100%);
            color: var(--pos-ink-700);
          }

          .pos-hero {
            background: linear-gradient(124deg, var(--pos-ink-700), var(--pos-brass-600));
            border-radius: 18px;
            color: #ffffff;
            padding: 1.1rem 1.25rem;
            margin-bottom: 1rem;
          }

          .pos-hero h1,
          .pos-hero p {
            color: #ffffff !important;
            margin: 0;
          }

          .metric-card {
            border-radius: 14px;
            border: 1px solid rgba(91, 85, 77, 0.25);
            background: var(--pos-card);
            padding: 0.75rem 0.8rem;
            min-height: 96px;
          }

          .metric-label {
            margin: 0;
            color: var(--pos-muted);
            font-weight: 600;
            font-size: 0.84rem;
          }

          .metric-value {
            margin: 0.3rem 0 0;
            color: var(--pos-brass-600);
            font-size: 1.4rem;
            line-height: 1.1;
          }

          .section-note {
            color: var(--pos-muted);
            font-weight: 500;
            margin-top: -0.2rem;
            margin-bottom: 0.8rem;
          }
        </style>
        """,
        unsafe_allow_html=True,
    )


def _render_metric_card(title: str, value: str) -> None:
    st.markdown(
        f"""
        <div class="metric-card">
          <p class="metric-label">{html.escape(title)}</p>
          <p class="metric-value">{html.escape(value)}</p>
        </div>
        """,
        unsafe_allow_html=True,
    )


def _hero() -> None:
    st.markdown(
        """
        <div class="pos-hero">
          <h1>Museum Point of Sale</h1>
          <p>Admissions, donations, memberships, and gift shop sales with a live daily report.</p>
        </div>
        """,
        unsafe_allow_html=True,
    )


def _payment_label(method: PaymentMethod | None) -> str:
    return "Select payment method" if method is None else str(method)


def _table_or_info(frame: pd.DataFrame, empty_message: str) -> None:
    if frame.empty:
        st.info(empty_message)
        return
    st.dataframe(frame, use_container_width=True, hide_index=True)


def _section_frame(section: dict[str, str]) -> pd.DataFrame:
    return pd.DataFrame([{"Item": label, "Value": value} for label, value in section.items()])


def _record(store: POSStore, sale: Admission | Donation | Membership | GiftShopSale) -> None:
    try:
        store.record_sale(sale)
    except ValidationError as exc:
        st.error(str(exc))
        return
    except POSError as exc:
        st.error(f"Sale was not saved: {exc}")
        return
    st.success(f"Recorded: {sale}")


def render_sale_tab(store: POSStore) -> None:
    st.markdown("### New Sale")
    st.markdown(
        "<p class='section-note'>Each sale is saved with its transaction record and shows up in today's report immediately.</p>",
        unsafe_allow_html=True,
    )

    admission_col, membership_col = st.columns(2, gap="large")

    with admission_col:
        st.markdown("#### Admissions")
        with st.form("admission-form", clear_on_submit=True):
            kind = st.selectbox("Admission Type", list(AdmissionKind), format_func=lambda item: item.description)
            payment_method = st.selectbox(
                "Payment Method (not needed for free admissions)",
                PAYMENT_OPTIONS,
                format_func=_payment_label,
            )
            quantity = st.number_input("Quantity", min_value=1, value=1, step=1, key="admission-quantity")
            if st.form_submit_button("Add Admission", use_container_width=True):
                _record(
                    store,
                    Admission(
                        kind=kind,
                        payment_method=None if kind.is_free else payment_method,
                        quantity=int(quantity),
                    ),
                )

    with membership_col:
        st.markdown("#### Memberships")
        with st.form("membership-form", clear_on_submit=True):
            membership_kind = st.selectbox(
                "Membership Type",
                list(MembershipKind),
                format_func=lambda item: f"{item} - {format_currency(item.price)}",
            )
            membership_payment = st.selectbox("Payment Method", PAYMENT_OPTIONS, format_func=_payment_label)
            membership_quantity = st.number_input("Quantity", min_value=1, value=1, step=1, key="membership-quantity")
            if st.form_submit_button("Add Membership", use_container_width=True):
                _record(
                    store,
                    Membership(
                        kind=membership_kind,
                        payment_method=membership_payment,
                        quantity=int(membership_quantity),
                    ),
                )

    donation_col, shop_col = st.columns(2, gap="large")

    with donation_col:
        st.markdown("#### Donations")
        with st.form("donation-form", clear_on_submit=True):
            donation_amount = st.number_input("Amount", min_value=0.0, value=0.0, step=1.0, format="%.2f")
            donation_payment = st.selectbox("Payment Method", PAYMENT_OPTIONS, format_func=_payment_label, key="donation-payment")
            if st.form_submit_button("Add Donation", use_container_width=True):
                _record(store, Donation(payment_method=donation_payment, price=float(donation_amount)))

    with shop_col:
        st.markdown("#### Gift Shop")
        with st.form("gift-shop-form", clear_on_submit=True):
            item_description = st.text_input("Item Description")
            item_price = st.number_input("Item Price", min_value=0.0, value=0.0, step=0.5, format="%.2f")
            shop_payment = st.selectbox("Payment Method", PAYMENT_OPTIONS, format_func=_payment_label, key="shop-payment")
            shop_quantity = st.number_input("Quantity", min_value=1, value=1, step=1, key="shop-quantity")
            sales_tax = st.number_input(
                "Sales Tax (%)",
                min_value=0.0,
                value=DEFAULT_SALES_TAX_PERCENT,
                step=0.05,
                format="%.2f",
            )
            if st.form_submit_button("Add Gift Shop Sale", use_container_width=True):
                _record(
                    store,
                    GiftShopSale(
                        item_description=item_description.strip(),
                        price=float(item_price),
                        payment_method=shop_payment,
                        quantity=int(shop_quantity),
                        sales_tax_percent=float(sales_tax),
                    ),
                )


def _report_html(report: DailySummary, title: str) -> str:
    parts = [f"<html><head><meta charset='utf-8'><title>{html.escape(title)}</title></head><body>"]
    parts.append(f"<h1>{html.escape(title)}</h1>")
    for heading, section in report.sections().items():
        parts.append(f"<h2>{html.escape(heading)}</h2>")
        parts.append(_section_frame(section).to_html(index=False, escape=True))
    parts.append("</body></html>")
    return "\n".join(parts)


def render_report_tab(store: POSStore) -> None:
    store.refresh_daily()
    report = daily_summary(store)

    st.markdown("### Daily Summary")
    summary_items = list(report.summary.items())
    metric_columns = st.columns(len(summary_items))
    for column, (label, value) in zip(metric_columns, summary_items):
        with column:
            _render_metric_card(label, value)

    payments_col, breakdown_col = st.columns([1.2, 1], gap="large")
    with payments_col:
        st.markdown("#### Daily Payments Breakdown")
        _table_or_info(_section_frame(report.payments), "No payments recorded today.")
    with breakdown_col:
        st.markdown("#### Daily Admission Breakdown")
        _table_or_info(_section_frame(report.admissions), "No admissions recorded today.")
        st.markdown("#### Daily Membership Sales Breakdown")
        _table_or_info(_section_frame(report.memberships), "No memberships sold today.")

    st.markdown("#### Revenue by Hour")
    hourly_df = pd.DataFrame(
        [
            {"Hour": row.hour.label, "Amount": row.entity.compute_total_cost()}
            for row in store.daily_transactions()
        ]
    )
    if hourly_df.empty:
        st.info("No transactions in the last 24 hours.")
    else:
        st.bar_chart(hourly_df.groupby("Hour", sort=False)["Amount"].sum(), color="#A66A1F")

    st.markdown("#### Transactions")
    transactions_df = pd.DataFrame(
        [
            {
                "Time": row.created_at.astimezone().strftime("%H:%M"),
                "Kind": str(row.entity.kind),
                "Description": row.entity.description,
                "Quantity": row.entity.quantity,
                "Total": format_currency(row.entity.total_cost),
            }
            for row in reversed(store.daily_transactions())
        ]
    )
    _table_or_info(transactions_df, "No transactions in the last 24 hours.")

    today = store.now()
    title = f"Daily Report {today:%Y-%m-%d}"
    st.download_button(
        "Export Daily Report",
        data=_report_html(report, title).encode("utf-8"),
        file_name=f"{today:%Y%m%d}_report.html",
        mime="text/html",
        use_container_width=False,
    )


def main() -> None:
    st.set_page_config(
        page_title="Museum Point of Sale",
        page_icon=":classical_building:",
        layout="wide",
    )
    _inject_styles()
    _hero()

    try:
        store = _get_store()
    except (POSError, ValueError) as exc:
        st.error(f"Unable to start the point of sale: {exc}")
        st.stop()

    tabs = st.tabs(["Sale", "Daily Report"])
    with tabs[0]:
        render_sale_tab(store)
    with tabs[1]:
        render_report_tab(store)


if __name__ == "__main__":
    main()
