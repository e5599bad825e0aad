from django.urls import path

from . import views

app_name = 'compliance'

urlpatterns = [
    path('sales-statistics/', views.sales_statistics, name='sales-statistics'),
    path('upgrade-to-business/', views.upgrade_to_business, name='upgrade-to-business'),
    path('admin/sellers-at-risk/', views.sellers_at_risk, name='sellers-at-risk'),
    path('admin/statistics/', views.platform_statistics, name='platform-statistics'),
    path('admin/dac7-report/<int:year>/', views.dac7_report, name='dac7-report'),
    path('admin/send-threshold-reminder/<int:user_id>/', views.send_threshold_reminder,
         name='send-threshold-reminder'),
]
