import asyncio
from datetime import date, timedelta
from typing import List

import altair as alt
import pandas as pd
import streamlit as st

from rental_scraper.data_handler import build_export_filename, extract_amount, records_to_dataframe
from rental_scraper.models import ListingRecord, ScrapeRequest
from rental_scraper.service import ScraperService


def get_service() -> ScraperService:
    if "service" not in st.session_state:
        service = ScraperService()
        # results of the last saved run survive a restart of the app
        service.restore_last_run()
        st.session_state.service = service
    return st.session_state.service


def scrape_form(service: ScraperService):
    st.sidebar.header("Scrape")
    with st.sidebar.form("scrape_form"):
        car_names_input = st.text_input("Car names", placeholder="e.g., Toyota Camry, Nissan Sunny")
        tomorrow = date.today() + timedelta(days=1)
        pickup = st.date_input("Pickup date", value=tomorrow)
        drop_off = st.date_input("Drop-off date", value=tomorrow + timedelta(days=2))
        daily = st.checkbox("Daily", value=True)
        weekly = st.checkbox("Weekly")
        monthly = st.checkbox("Monthly")
        months = st.number_input("Months", min_value=0, max_value=12, value=0, step=1)
        submitted = st.form_submit_button("Scrape", use_container_width=True)

    if not submitted:
        return

    request = ScrapeRequest(
        car_names=[name.strip() for name in car_names_input.split(",") if name.strip()],
        daily=daily,
        weekly=weekly,
        monthly=monthly,
        pickup_date=pickup,
        drop_off_date=drop_off,
        months=int(months),
    )
    with st.spinner("Scraping listings, this can take a few minutes..."):
        outcome = asyncio.run(service.scrape(request))
    service.data_handler.save_to_json(outcome)
    st.session_state.last_message = (outcome.success, outcome.message)


def price_chart(records: List[ListingRecord]):
    df = records_to_dataframe(records)
    df["Price"] = pd.to_numeric(df["Actual Price"].map(extract_amount), errors="coerce")
    df = df.dropna(subset=["Price"])
    if df.empty:
        return None
    return (
        alt.Chart(df)
        .mark_bar()
        .encode(
            x=alt.X("min(Price):Q", title="Lowest actual price (AED)"),
            y=alt.Y("Car Name:N", sort="x", title=None),
            color=alt.Color("Period:N", legend=alt.Legend(orient="bottom")),
            tooltip=["Car Name", "Period", "min(Price):Q"],
        )
    )


def main() -> None:
    st.set_page_config(page_title="Car Rental Scraper", layout="wide")
    st.title("Car Rental Scraper")

    service = get_service()
    scrape_form(service)

    if "last_message" in st.session_state:
        success, message = st.session_state.last_message
        (st.success if success else st.error)(message)

    if not service.records:
        st.info("Enter one or more car names in the sidebar and start a scrape.")
        st.stop()

    st.sidebar.header("Filters")
    selected_cars = st.sidebar.multiselect("Car Name", options=service.car_names())
    year_options = ["All Years"] + service.years()
    selected_year = st.sidebar.selectbox("Year", options=year_options, index=0)
    year = None if selected_year == "All Years" else selected_year

    records = service.filter_records(selected_cars, year)

    col1, col2, col3 = st.columns(3)
    with col1:
        st.metric("Listings", len(records))
    with col2:
        st.metric("Car Names", len({r.car_name for r in records}))
    with col3:
        prices = [p for p in (extract_amount(r.actual_price) for r in records) if p is not None]
        st.metric("Lowest Price", f"{min(prices):,.2f}" if prices else "-")

    if not records:
        st.warning("No data matches the selected filters")
        st.stop()

    st.subheader("Listings")
    st.dataframe(records_to_dataframe(records), use_container_width=True, hide_index=True)

    chart = price_chart(records)
    if chart is not None:
        st.subheader("Lowest price per car")
        st.altair_chart(chart, use_container_width=True)

    st.download_button(
        label="Download as Excel",
        data=service.data_handler.to_excel_bytes(records),
        file_name=build_export_filename(selected_cars, year),
        mime="application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
    )


if __name__ == "__main__":
    main()
