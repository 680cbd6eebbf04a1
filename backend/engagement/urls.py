"""
App URL configuration for the engagement API.
"""
from django.urls import path
from engagement.api import leads, bookings, sessions

urlpatterns = [
    # Leads
    path('leads/', leads.LeadListCreateView.as_view()),
    path('leads/stats', leads.LeadStatsView.as_view()),
    path('leads/<uuid:lead_id>', leads.LeadDetailView.as_view()),
    path('leads/<uuid:lead_id>/status', leads.LeadStatusView.as_view()),
    path('leads/<uuid:lead_id>/calls/complete', leads.CallCompletedView.as_view()),
    path('leads/<uuid:lead_id>/calls/not-connected', leads.CallNotConnectedView.as_view()),
    path('leads/<uuid:lead_id>/convert', leads.LeadConvertView.as_view()),

    # Call bookings
    path('bookings/', bookings.BookingListCreateView.as_view()),
    path('bookings/upcoming', bookings.UpcomingBookingsView.as_view()),
    path('bookings/stats', bookings.BookingStatsView.as_view()),
    path('bookings/<uuid:booking_id>', bookings.BookingDetailView.as_view()),

    # Sessions
    path('sessions/start', sessions.SessionStartView.as_view()),
    path('sessions/end', sessions.SessionEndView.as_view()),
    path('sessions/current', sessions.CurrentSessionView.as_view()),
    path('sessions/stats', sessions.SessionStatsView.as_view()),
]
