import os
import sys

import matplotlib
matplotlib.use('Agg')
import matplotlib.pyplot as plt


def parse_benders_log(log_file_path):
    # one list of iterations per candidate block in the log
    candidates = []
    current = None

    with open(log_file_path, 'r') as f:
        for line in f:
            line = line.strip()
            if line.startswith('Candidate'):
                current = {'upper': [], 'lower': [], 'gap': [], 'cuts': []}
                candidates.append(current)
            elif current is None:
                continue
            elif line.startswith('Upper Bound:'):
                current['upper'].append(float(line.split(':')[1].strip()))
            elif line.startswith('Lower Bound:'):
                current['lower'].append(float(line.split(':')[1].strip()))
            elif line.startswith('Gap:'):
                current['gap'].append(float(line.split(':')[1].strip().replace('%', '')))
            elif line.startswith('Cuts Added:'):
                current['cuts'].append(int(line.split(':')[1].strip()))

    return candidates


def plot_convergence(candidate, title='Benders Convergence', output_path=None):
    """Bounds and gap on top, cuts per iteration below.

    Iterations with an infeasible subproblem have no upper bound yet; they
    are left out of the upper-bound and gap lines.
    """
    iterations = list(range(1, len(candidate['lower']) + 1))
    bounded = [(i, upper, gap) for i, upper, gap in zip(iterations, candidate['upper'], candidate['gap'])
               if upper != float('inf')]
    finite = [i for i, _, _ in bounded]

    fig, (ax_bounds, ax_cuts) = plt.subplots(2, 1, figsize=(10, 8), sharex=True,
                                             gridspec_kw={'height_ratios': [3, 1]})

    ax_bounds.plot(finite, [upper for _, upper, _ in bounded], 'r-o', label='Upper Bound', markersize=4)
    ax_bounds.plot(iterations, candidate['lower'], 'b-s', label='Lower Bound', markersize=4)
    ax_bounds.set_ylabel('Objective Value', fontsize=12)
    ax_bounds.legend(loc='upper left')
    ax_bounds.grid(True, alpha=0.3)

    ax_gap = ax_bounds.twinx()
    ax_gap.plot(finite, [gap for _, _, gap in bounded], 'g-^', label='Gap (%)', markersize=4)
    ax_gap.set_ylabel('Gap (%)', fontsize=12, color='g')
    ax_gap.tick_params(axis='y', labelcolor='g')
    ax_gap.legend(loc='upper right')

    ax_cuts.bar(iterations[:len(candidate['cuts'])], candidate['cuts'], color='grey')
    ax_cuts.set_xlabel('Iteration', fontsize=12)
    ax_cuts.set_ylabel('Cuts Added', fontsize=12)
    ax_cuts.grid(True, axis='y', alpha=0.3)

    ax_bounds.set_title(title, fontsize=14)
    fig.tight_layout()

    if output_path:
        fig.savefig(output_path, dpi=300, bbox_inches='tight')
    return fig


def main(results_directory='results'):
    log_file_path = os.path.join(results_directory, 'BendersLog.txt')

    candidates = parse_benders_log(log_file_path)
    if not candidates:
        return
    output_path = os.path.join(results_directory, 'convergence_plot.png')
    plot_convergence(candidates[-1], title=f'Benders Convergence (Candidate {len(candidates)})',
                     output_path=output_path)
    plt.close('all')


if __name__ == '__main__':
    main(*sys.argv[1:])
