from django.urls import path
from .views import revenue_statistics, revenue_dashboard, revenue_recalculate

urlpatterns = [
    path('revenue/statistics/', revenue_statistics, name='revenue-statistics'),
    path('revenue/dashboard/', revenue_dashboard, name='revenue-dashboard'),
    path('revenue/recalculate/', revenue_recalculate, name='revenue-recalculate'),
]
