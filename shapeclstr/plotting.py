"""
Plotting utilities for clustering results.
"""
import math
from typing import Optional

import matplotlib.pyplot as plt
import numpy as np

from .preprocessing import to_time_series_dataset


def plot_clusters(X, labels, cluster_centers: Optional[np.ndarray] = None, title: str = 'k-Shape clusters',
                  mode: str = 'show', fname: str = 'results', no_cols: int = 4) -> plt.Figure:
    """
    Plot cluster members on separate subplots using matplotlib.

    This function creates a grid of subplots where each subplot shows all time series
    belonging to a specific cluster, overlaid with the cluster centroid when given.
    Multivariate series are drawn feature by feature.

    Parameters
    ----------
    X : array-like
        Clustered time series, any layout accepted by `to_time_series_dataset`.
    labels : array-like
        Cluster label of every series.
    cluster_centers : np.ndarray, optional
        Centroids of shape (n_clusters, sz, d), drawn in black.
    title : str, default='k-Shape clusters'
        Window and figure title.
    mode : str, default='show'
        Display mode for the plot:

        - 'show': Display the plot interactively using matplotlib.pyplot.show()
        - 'save': Save the plot to a PNG file without displaying it

    fname : str, default='results'
        Base filename for saving the plot (without extension). Only used when
        mode='save'. The file will be saved as '{fname}.png'.
    no_cols : int, default=4
        Number of subplot columns.

    Returns
    -------
    matplotlib.figure.Figure
        The figure that was drawn.
    """
    if mode not in ('show', 'save'):
        raise ValueError("mode must be 'show' or 'save'")

    X = to_time_series_dataset(X)
    labels = np.asarray(labels)
    if labels.shape[0] != X.shape[0]:
        raise ValueError("There must be one label per time series")

    n_clusters = int(labels.max()) + 1
    if cluster_centers is not None:
        n_clusters = max(n_clusters, len(cluster_centers))

    main_fig = plt.figure(figsize=(14, 10))
    if main_fig.canvas.manager is not None:
        main_fig.canvas.manager.set_window_title(title)
    main_fig.suptitle(title, weight='bold')
    no_cols = min(no_cols, n_clusters)
    no_rows = int(math.ceil(float(n_clusters) / no_cols))
    t = np.arange(X.shape[1])

    for k in range(n_clusters):
        sub_plot = main_fig.add_subplot(no_rows, no_cols, k + 1)

        for each_ts in X[labels == k]:
            sub_plot.plot(t, each_ts, linewidth=1, alpha=0.4)

        if cluster_centers is not None:
            sub_plot.plot(t, cluster_centers[k], color='black', linewidth=2)

        sub_plot.set_title('Cluster no: ' + str(k) + ' (' + str(int(np.sum(labels == k))) + ')', weight='bold')

    main_fig.tight_layout()
    if mode == 'show':
        plt.show()
    else:
        main_fig.savefig('{0}.png'.format(fname))
    return main_fig
