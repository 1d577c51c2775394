"""Reporting API endpoints for dealership-reports

This package provides the analytics reports of the dealership and workshop
platform: supplier conversations, suppliers, users, vehicle advertisements,
notification configurations, dropdown masters and trade-in configurations.
Access to every endpoint requires authentication, and company super admins
assigned to dealerships only see the data of those dealerships.

Endpoints accept a creation date range (startDate/endDate, or from/to).
The report registry maps every report type to its route and to the service
function that contains the actual business logic."""
